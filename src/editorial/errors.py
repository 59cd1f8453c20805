"""Error taxonomy and per-run reporting for the editorial pipeline.

Everything raised by stores and providers derives from EditorialError.
Only ConfigurationError is allowed to escape a workflow run; every other
failure is caught at the per-item boundary and recorded on the item.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class EditorialError(Exception):
    """Base error for the editorial pipeline."""


class ConfigurationError(EditorialError):
    """A required credential or identifier is missing or invalid."""


class ProviderError(EditorialError):
    """A research or draft provider call failed.

    Carries the upstream HTTP status code when one is available.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        provider: str = "",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.provider = provider


class StoreError(EditorialError):
    """A content store operation failed."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ItemNotFoundError(StoreError, KeyError):
    """The item identifier does not resolve in the store."""

    def __str__(self) -> str:
        return self.message


class StoreWriteError(StoreError):
    """A write or create against the store failed or was not confirmed."""


class InvalidTransitionError(StoreError):
    """A status change is not in the legal transition table."""


# ---------------------------------------------------------------------------
# Run reporting
# ---------------------------------------------------------------------------


class Outcome(StrEnum):
    """What happened to one item during a run."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    RETRY = "retry"
    SKIPPED = "skipped"
    DRY_RUN = "dry_run"


class ItemOutcome(BaseModel):
    """Result of driving one item through one stage."""

    item_id: str
    title: str = ""
    outcome: Outcome
    message: str = ""
    created_id: str | None = None


class RunReport(BaseModel):
    """Summary of one workflow invocation."""

    stage: str
    dry_run: bool = False
    outcomes: list[ItemOutcome] = Field(default_factory=list)

    def add(self, outcome: ItemOutcome) -> None:
        self.outcomes.append(outcome)

    def _count(self, *kinds: Outcome) -> int:
        return sum(1 for o in self.outcomes if o.outcome in kinds)

    @property
    def succeeded(self) -> int:
        return self._count(Outcome.SUCCEEDED)

    @property
    def failed(self) -> int:
        return self._count(Outcome.FAILED, Outcome.RETRY)

    @property
    def skipped(self) -> int:
        return self._count(Outcome.SKIPPED, Outcome.DRY_RUN)

    @property
    def has_failures(self) -> bool:
        return self.failed > 0

    def summary(self) -> str:
        """One-line human summary for logs and the CLI."""
        return (
            f"{self.stage}: {len(self.outcomes)} item(s), "
            f"{self.succeeded} succeeded, {self.failed} failed, {self.skipped} skipped"
        )
