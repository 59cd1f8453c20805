"""Status-driven workflow state machine.

Each run drives eligible items through one stage. The status field is the
work queue: an item is eligible for a stage only while its status equals
the stage's entry status, so an item that has moved on is never picked up
again. The in-progress status is persisted and confirmed before any
provider call, which makes a crash mid-call visible as a stuck item
rather than silent loss.
"""

from __future__ import annotations

import logging

from editorial.content.models import ContentItem, ContentStatus
from editorial.content.store import ContentStore, utc_now
from editorial.content.transitions import check_transition
from editorial.errors import (
    ConfigurationError,
    ItemNotFoundError,
    ItemOutcome,
    Outcome,
    RunReport,
    StoreWriteError,
)
from editorial.providers.base import DraftProvider, ResearchProvider
from editorial.workflow.stages import (
    RESEARCH_STAGE,
    FailurePolicy,
    Stage,
    StageDefinition,
    append_research,
    draft_stage,
)

logger = logging.getLogger(__name__)

_COPIED_METADATA = ("tags", "category")


class WorkflowStateMachine:
    """Drives content items through the research and draft stages.

    Args:
        store: Where items live.
        research_provider: Required to run the research stage.
        draft_provider: Required to run the draft stage.
        failure_policies: Per-stage policy; stages not listed use ERROR.
        processed_status: Status the draft source ends in on success.
    """

    def __init__(
        self,
        store: ContentStore,
        *,
        research_provider: ResearchProvider | None = None,
        draft_provider: DraftProvider | None = None,
        failure_policies: dict[Stage, FailurePolicy] | None = None,
        processed_status: ContentStatus = ContentStatus.DRAFT_COMPLETE,
    ) -> None:
        self.store = store
        self.research_provider = research_provider
        self.draft_provider = draft_provider
        self.failure_policies = dict(failure_policies or {})
        self.definitions: dict[Stage, StageDefinition] = {
            Stage.RESEARCH: RESEARCH_STAGE,
            Stage.DRAFT: draft_stage(processed_status),
        }

    def definition(self, stage: Stage | str) -> StageDefinition:
        return self.definitions[Stage(stage)]

    def failure_policy(self, stage: Stage | str) -> FailurePolicy:
        return self.failure_policies.get(Stage(stage), FailurePolicy.ERROR)

    # ── Selection ────────────────────────────────────────────────

    def select_eligible_items(self, stage: Stage | str) -> list[ContentItem]:
        """All items whose status equals the stage's entry status, in store order."""
        entry = self.definition(stage).entry_status
        # Exact match only, whatever the backend's query filter does.
        return [item for item in self.store.query_by_status(entry) if item.status == entry]

    def select_eligible_item(self, stage: Stage | str) -> ContentItem | None:
        """First eligible item for ``stage``, or None."""
        items = self.select_eligible_items(stage)
        return items[0] if items else None

    def has_eligible_items(self, stage: Stage | str) -> bool:
        return self.select_eligible_item(stage) is not None

    # ── Running ──────────────────────────────────────────────────

    def run(
        self,
        stage: Stage | str,
        *,
        single_item: bool = False,
        dry_run: bool = False,
        item_id: str | None = None,
    ) -> RunReport:
        """Run ``stage`` once over the eligible items.

        Args:
            stage: Which stage to run.
            single_item: Process only the first eligible item.
            dry_run: Validate eligible items without writing or calling providers.
            item_id: Process only this item, if it is eligible.

        Returns:
            A RunReport with one outcome per item considered.

        Raises:
            ConfigurationError: If the stage's provider is not configured.
            ItemNotFoundError: If ``item_id`` does not resolve.
            StoreError: If the eligible items cannot be read from the store.
        """
        stage = Stage(stage)
        definition = self.definition(stage)
        report = RunReport(stage=stage.value, dry_run=dry_run)
        if not dry_run:
            self._provider_for(stage)

        if item_id is not None:
            item = self.store.read(item_id)
            if item.status != definition.entry_status:
                logger.info(
                    "Item %s is %r, not %r; nothing to %s",
                    item_id,
                    item.status.value,
                    definition.entry_status.value,
                    stage.value,
                )
                return report
            items = [item]
        else:
            items = self.select_eligible_items(stage)
            if single_item:
                items = items[:1]

        logger.info("Found %d item(s) ready for %s", len(items), stage.value)
        # Snapshot taken once, so each item is processed at most once per run.
        for item in items:
            report.add(self.run_stage(item, stage, dry_run=dry_run))

        logger.info("%s", report.summary())
        return report

    def run_stage(
        self,
        item: ContentItem,
        stage: Stage | str,
        *,
        dry_run: bool = False,
    ) -> ItemOutcome:
        """Drive one item through one stage.

        Every failure after validation is caught here and handled by the
        stage's failure policy; only ConfigurationError propagates.
        """
        stage = Stage(stage)
        definition = self.definition(stage)

        title = item.title.strip()
        if not title:
            logger.warning("Skipping item %s: no title", item.id)
            return ItemOutcome(item_id=item.id, outcome=Outcome.SKIPPED, message="missing title")
        if stage == Stage.DRAFT and not item.body.strip():
            logger.warning("Skipping item %s (%s): no research content", item.id, title)
            return ItemOutcome(
                item_id=item.id,
                title=title,
                outcome=Outcome.SKIPPED,
                message="missing research content",
            )

        if dry_run:
            logger.info("[DRY RUN] Would %s %r (%s)", stage.value, title, item.id)
            return ItemOutcome(item_id=item.id, title=title, outcome=Outcome.DRY_RUN)

        try:
            if stage == Stage.RESEARCH:
                return self._research(item, definition)
            return self._draft(item, definition)
        except ConfigurationError:
            raise
        except Exception as exc:
            logger.exception("Error processing %r during %s", title, stage.value)
            return self._handle_failure(item, definition, exc)

    def reset_item(self, item_id: str, status: ContentStatus | str) -> ContentItem:
        """Manually move an item to ``status``, clearing any error message.

        Raises:
            ItemNotFoundError: If the item does not exist.
            InvalidTransitionError: If the move is not a legal transition.
        """
        target = ContentStatus(status)
        item = self.store.read(item_id)
        check_transition(item.status, target)
        return self._write_confirmed(
            item.with_status(target),
            f"Reset {item.title or item_id} from {item.status.value} to {target.value}",
        )

    # ── Stages ───────────────────────────────────────────────────

    def _provider_for(self, stage: Stage) -> ResearchProvider | DraftProvider:
        provider = self.research_provider if stage == Stage.RESEARCH else self.draft_provider
        if provider is None:
            raise ConfigurationError(f"No {stage.value} provider configured")
        return provider

    def _start(self, item: ContentItem, definition: StageDefinition) -> ContentItem:
        check_transition(item.status, definition.in_progress_status)
        return self._write_confirmed(
            item.with_status(definition.in_progress_status),
            f"WIP: Start {definition.verb} for {item.title}",
        )

    def _research(self, item: ContentItem, definition: StageDefinition) -> ItemOutcome:
        provider = self._provider_for(Stage.RESEARCH)
        current = self._start(item, definition)

        result = provider.research(current.title)
        logger.info("Research returned %d citation(s) for %r", len(result.citations), item.title)

        check_transition(current.status, definition.success_status)
        done = current.with_status(
            definition.success_status,
            body=append_research(current.body, result.content, result.citations),
            metadata={**current.metadata, "date_researched": utc_now().date().isoformat()},
        )
        self._write_confirmed(done, f"Research complete for {item.title}")
        return ItemOutcome(item_id=item.id, title=item.title, outcome=Outcome.SUCCEEDED)

    def _draft(self, item: ContentItem, definition: StageDefinition) -> ItemOutcome:
        provider = self._provider_for(Stage.DRAFT)
        current = self._start(item, definition)
        if current.related_id and definition.companion_in_progress_status:
            self._update_companion(
                current.related_id,
                definition.companion_in_progress_status,
                f"WIP: Start draft for {item.title}",
            )

        artifact = self._existing_draft(current)
        if artifact is not None:
            logger.info("Reusing draft %s from an earlier attempt for %r", artifact.id, item.title)
        else:
            result = provider.draft(current.title, current.body)

            metadata = {
                "original_title": current.title,
                "date_drafted": utc_now().date().isoformat(),
            }
            for key in _COPIED_METADATA:
                if key in current.metadata:
                    metadata[key] = current.metadata[key]
            artifact = self.store.create(
                ContentItem(
                    title=current.title,
                    status=definition.artifact_status or ContentStatus.READY_FOR_REVIEW,
                    body=result.content,
                    metadata=metadata,
                ),
                parent_id=current.id,
                message=f"Create draft for {item.title}",
            )
            logger.info("Created draft %s for %r", artifact.id, item.title)

        try:
            check_transition(current.status, definition.success_status)
            self._write_confirmed(
                current.with_status(
                    definition.success_status,
                    metadata={**current.metadata, "draft_id": artifact.id},
                ),
                f"Draft complete for {item.title}, draft at {artifact.id}",
            )
        except ConfigurationError:
            raise
        except Exception as exc:
            # The draft exists; keep its id on the source so a rerun reuses it.
            logger.exception("Error completing draft for %r", item.title)
            return self._handle_failure(
                item, definition, exc, metadata={"draft_id": artifact.id}
            )
        if current.related_id and definition.companion_success_status:
            self._update_companion(
                current.related_id,
                definition.companion_success_status,
                f"Draft created for {item.title}",
                draft_id=artifact.id,
            )
        return ItemOutcome(
            item_id=item.id,
            title=item.title,
            outcome=Outcome.SUCCEEDED,
            created_id=artifact.id,
        )

    def _existing_draft(self, source: ContentItem) -> ContentItem | None:
        """The draft recorded on ``source`` by an earlier failed attempt, if it still exists."""
        draft_id = source.metadata.get("draft_id")
        if not draft_id:
            return None
        try:
            draft = self.store.read(str(draft_id))
        except ItemNotFoundError:
            return None
        return draft if draft.related_id == source.id else None

    # ── Persistence helpers ──────────────────────────────────────

    def _write_confirmed(self, item: ContentItem, message: str) -> ContentItem:
        """Write ``item`` and check the store reports the requested status."""
        persisted = self.store.write(item, message=message)
        if persisted.status != item.status:
            raise StoreWriteError(
                f"Store did not confirm status {item.status.value!r} for {item.id} "
                f"(got {persisted.status.value!r})"
            )
        return persisted

    def _update_companion(
        self,
        companion_id: str,
        status: ContentStatus,
        message: str,
        *,
        error_message: str | None = None,
        draft_id: str | None = None,
    ) -> None:
        """Best-effort companion status update; failures are logged only."""
        try:
            companion = self.store.read(companion_id)
            updates = {}
            if draft_id is not None:
                updates["metadata"] = {**companion.metadata, "draft_id": draft_id}
            self.store.write(
                companion.with_status(status, error_message=error_message, **updates),
                message=message,
            )
        except Exception:
            logger.warning(
                "Could not update companion %s to %r", companion_id, status.value, exc_info=True
            )

    def _handle_failure(
        self,
        item: ContentItem,
        definition: StageDefinition,
        exc: Exception,
        *,
        metadata: dict | None = None,
    ) -> ItemOutcome:
        message = str(exc) or f"Unknown error occurred during {definition.verb}"
        policy = self.failure_policy(definition.stage)

        if policy == FailurePolicy.RETRY:
            failed = item.with_status(definition.entry_status)
            outcome = Outcome.RETRY
            commit = f"Retry {definition.verb} for {item.title}: {message}"
        else:
            failed = item.with_status(ContentStatus.ERROR, error_message=message)
            outcome = Outcome.FAILED
            commit = f"Error during {definition.verb} for {item.title}: {message}"

        try:
            # Re-read so a body written before the failure is not clobbered.
            latest = self.store.read(item.id)
            failed = failed.model_copy(
                update={"body": latest.body, "metadata": {**latest.metadata, **(metadata or {})}}
            )
            self.store.write(failed, message=commit)
        except Exception:
            logger.exception("Failed to record %s failure on %s", definition.verb, item.id)

        if item.related_id:
            self._update_companion(
                item.related_id,
                ContentStatus.ERROR,
                commit,
                error_message=message,
            )

        return ItemOutcome(item_id=item.id, title=item.title, outcome=outcome, message=message)
