"""Stage definitions: which statuses each stage reads, writes and leaves behind."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel

from editorial.content.models import ContentStatus


class Stage(StrEnum):
    RESEARCH = "research"
    DRAFT = "draft"


class FailurePolicy(StrEnum):
    """What happens to an item whose stage fails.

    ERROR parks it in the Error status with a message for a human.
    RETRY returns it to the stage's entry status for the next cycle.
    """

    ERROR = "error"
    RETRY = "retry"


class StageDefinition(BaseModel):
    """Status bookkeeping for one stage."""

    stage: Stage
    entry_status: ContentStatus
    in_progress_status: ContentStatus
    success_status: ContentStatus
    companion_in_progress_status: ContentStatus | None = None
    companion_success_status: ContentStatus | None = None
    artifact_status: ContentStatus | None = None

    @property
    def verb(self) -> str:
        return self.stage.value


RESEARCH_STAGE = StageDefinition(
    stage=Stage.RESEARCH,
    entry_status=ContentStatus.READY_FOR_RESEARCH,
    in_progress_status=ContentStatus.RESEARCH_IN_PROGRESS,
    success_status=ContentStatus.READY_FOR_DRAFT,
)


def draft_stage(processed_status: ContentStatus = ContentStatus.DRAFT_COMPLETE) -> StageDefinition:
    """Draft stage definition with the configured source terminal status."""
    return StageDefinition(
        stage=Stage.DRAFT,
        entry_status=ContentStatus.READY_FOR_DRAFT,
        in_progress_status=ContentStatus.DRAFT_IN_PROGRESS,
        success_status=processed_status,
        companion_in_progress_status=ContentStatus.DRAFT_IN_PROGRESS,
        companion_success_status=ContentStatus.DRAFT_CREATED,
        artifact_status=ContentStatus.READY_FOR_REVIEW,
    )


def build_sources_section(citations: list[str]) -> str:
    """Render citations as a numbered ``## Sources`` section.

    Returns an empty string when there are no citations.
    """
    if not citations:
        return ""
    lines = "".join(f"{i + 1}. {citation}\n" for i, citation in enumerate(citations))
    return f"\n\n## Sources\n{lines}"


def append_research(existing_body: str, content: str, citations: list[str]) -> str:
    """Existing body (if any), then the findings, then the Sources section."""
    body = f"{existing_body}\n\n{content}" if existing_body.strip() else content
    return body + build_sources_section(citations)
