"""Timed poller: run research then draft, one item each, on an interval."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from editorial.errors import ConfigurationError, RunReport
from editorial.workflow.stages import Stage
from editorial.workflow.state_machine import WorkflowStateMachine

logger = logging.getLogger(__name__)


class TimedPoller:
    """Repeatedly runs enabled stages in single-item mode.

    Cycles never overlap: the next one starts ``interval_minutes`` after
    the previous one finished. A failing cycle is logged and the loop
    keeps going; only a ConfigurationError stops it.
    """

    def __init__(
        self,
        machine: WorkflowStateMachine,
        *,
        interval_minutes: float = 5.0,
        research: bool = True,
        draft: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.machine = machine
        self.interval_minutes = interval_minutes
        self.stages = [
            stage
            for stage, enabled in ((Stage.RESEARCH, research), (Stage.DRAFT, draft))
            if enabled
        ]
        self._sleep = sleep

    def run_cycle(self) -> list[RunReport]:
        """Run each enabled stage once; one stage failing does not skip the next."""
        started = time.monotonic()
        reports: list[RunReport] = []
        for stage in self.stages:
            try:
                reports.append(self.machine.run(stage, single_item=True))
            except ConfigurationError:
                raise
            except Exception:
                logger.exception("Cycle step %s failed", stage.value)
        logger.info("Cycle completed in %.1fs", time.monotonic() - started)
        return reports

    def run_forever(self, max_cycles: int | None = None) -> int:
        """Loop until interrupted or ``max_cycles`` cycles have run.

        Returns:
            Number of cycles completed.
        """
        logger.info(
            "Polling every %s minute(s): %s",
            self.interval_minutes,
            ", ".join(s.value for s in self.stages) or "no stages enabled",
        )
        cycles = 0
        try:
            while max_cycles is None or cycles < max_cycles:
                self.run_cycle()
                cycles += 1
                if max_cycles is not None and cycles >= max_cycles:
                    break
                logger.info("Next run in %s minute(s)", self.interval_minutes)
                self._sleep(self.interval_minutes * 60)
        except KeyboardInterrupt:
            logger.info("Shutting down poller after %d cycle(s)", cycles)
        return cycles
