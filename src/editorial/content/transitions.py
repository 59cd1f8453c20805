"""Legal status transitions for items driven by the workflow."""

from __future__ import annotations

from editorial.content.models import ContentStatus
from editorial.errors import InvalidTransitionError

S = ContentStatus

TRANSITIONS: dict[ContentStatus, frozenset[ContentStatus]] = {
    S.READY_FOR_RESEARCH: frozenset({S.RESEARCH_IN_PROGRESS}),
    S.RESEARCH_IN_PROGRESS: frozenset({S.READY_FOR_DRAFT, S.ERROR, S.READY_FOR_RESEARCH}),
    S.READY_FOR_DRAFT: frozenset({S.DRAFT_IN_PROGRESS}),
    S.DRAFT_IN_PROGRESS: frozenset(
        {S.DRAFT_COMPLETE, S.RESEARCH_PROCESSED, S.ERROR, S.READY_FOR_DRAFT}
    ),
    S.ERROR: frozenset({S.READY_FOR_RESEARCH, S.READY_FOR_DRAFT, S.READY_FOR_REVIEW}),
    S.READY_FOR_REVIEW: frozenset({S.PUBLISHED}),
    S.DRAFT_COMPLETE: frozenset({S.READY_FOR_REVIEW}),
    S.RESEARCH_PROCESSED: frozenset({S.READY_FOR_REVIEW}),
    S.DRAFT_CREATED: frozenset(),
    S.PUBLISHED: frozenset(),
}


def is_valid_transition(current: ContentStatus, target: ContentStatus) -> bool:
    """Check whether ``current -> target`` is a legal status change."""
    return target in TRANSITIONS.get(current, frozenset())


def check_transition(current: ContentStatus, target: ContentStatus) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is legal."""
    if not is_valid_transition(current, target):
        raise InvalidTransitionError(
            f"Invalid status transition from {current.value!r} to {target.value!r}"
        )


def allowed_targets(current: ContentStatus) -> list[ContentStatus]:
    """Statuses reachable from ``current``, in declaration order."""
    targets = TRANSITIONS.get(current, frozenset())
    return [s for s in ContentStatus if s in targets]
