"""Workflow: stage definitions, the state machine, and the timed poller."""

from __future__ import annotations

from typing import TYPE_CHECKING

from editorial.workflow.stages import (
    FailurePolicy,
    Stage,
    StageDefinition,
    append_research,
    build_sources_section,
)

if TYPE_CHECKING:
    from editorial.config import EditorialConfig
    from editorial.workflow.state_machine import WorkflowStateMachine

__all__ = [
    "FailurePolicy",
    "Stage",
    "StageDefinition",
    "append_research",
    "build_sources_section",
    "create_state_machine",
]


def create_state_machine(
    config: EditorialConfig,
    *,
    stages: tuple[Stage, ...] = (Stage.RESEARCH, Stage.DRAFT),
) -> WorkflowStateMachine:
    """Wire a state machine from config.

    Only the providers for ``stages`` are built, so a run of one stage
    never requires the other stage's credentials.

    Raises:
        ConfigurationError: If a required credential is missing.
    """
    from editorial.providers import create_draft_provider, create_research_provider
    from editorial.stores import create_store
    from editorial.workflow.state_machine import WorkflowStateMachine

    return WorkflowStateMachine(
        create_store(config),
        research_provider=(
            create_research_provider(config) if Stage.RESEARCH in stages else None
        ),
        draft_provider=create_draft_provider(config) if Stage.DRAFT in stages else None,
        failure_policies={
            Stage.RESEARCH: config.workflow.research_failure_policy,
            Stage.DRAFT: config.workflow.draft_failure_policy,
        },
        processed_status=config.workflow.processed_status,
    )
