"""Content domain models: pure Pydantic v2 data types.

A ContentItem is the unit of work: a topic, a research brief, or a draft.
Its ``status`` field is the pipeline's work queue; the workflow selects
items by exact status match and nothing else.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class ContentStatus(StrEnum):
    """Pipeline status of a content item.

    The values are matched against external store values (Notion status
    options, frontmatter strings), so their spelling is part of the contract.
    """

    READY_FOR_RESEARCH = "Ready for Research"
    RESEARCH_IN_PROGRESS = "Research In Progress"
    READY_FOR_DRAFT = "Ready for Draft"
    DRAFT_IN_PROGRESS = "Draft In Progress"
    READY_FOR_REVIEW = "Ready for Review"
    DRAFT_COMPLETE = "Draft Complete"
    RESEARCH_PROCESSED = "Research Processed"
    DRAFT_CREATED = "Draft Created"
    ERROR = "Error"
    PUBLISHED = "Published"


class ContentItem(BaseModel):
    """A content item tracked by a ContentStore."""

    id: str = ""
    title: str = ""
    status: ContentStatus
    body: str = ""
    related_id: str | None = None
    error_message: str | None = None
    last_modified: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def with_status(
        self,
        status: ContentStatus,
        *,
        error_message: str | None = None,
        **updates: Any,
    ) -> ContentItem:
        """Return a copy in ``status``.

        ``error_message`` is kept only when the new status is ERROR, so the
        copy always satisfies "error_message is set iff status is Error".
        """
        if status == ContentStatus.ERROR:
            message = error_message or self.error_message or "Unknown error"
        else:
            message = None
        return self.model_copy(
            update={"status": status, "error_message": message, **updates},
            deep=True,
        )


# ---------------------------------------------------------------------------
# Provider results
# ---------------------------------------------------------------------------


class ResearchResult(BaseModel):
    """Validated output of a research provider."""

    content: str
    citations: list[str] = Field(default_factory=list)
    model: str | None = None
    usage: dict[str, Any] = Field(default_factory=dict)

    @field_validator("content")
    @classmethod
    def _content_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("research content is empty")
        return value

    @field_validator("citations", mode="before")
    @classmethod
    def _coerce_citations(cls, value: Any) -> list[str]:
        if value is None:
            return []
        return [str(c) for c in value]


class DraftResult(BaseModel):
    """Validated output of a draft provider."""

    content: str
    model: str | None = None
    usage: dict[str, Any] = Field(default_factory=dict)

    @field_validator("content")
    @classmethod
    def _content_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("draft content is empty")
        return value
