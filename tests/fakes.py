"""Fakes and builders shared by the test modules."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock

from editorial.content.models import ContentItem, ContentStatus, DraftResult, ResearchResult
from editorial.content.store import JsonContentStore
from editorial.providers.base import DraftProvider, ResearchProvider


class FakeResearchProvider(ResearchProvider):
    """Returns a canned result, or raises ``error`` when set."""

    name = "fake-research"

    def __init__(
        self,
        content: str = "bar",
        citations: list[str] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.content = content
        self.citations = citations or []
        self.error = error
        self.calls: list[str] = []

    def research(self, title: str) -> ResearchResult:
        self.calls.append(title)
        if self.error is not None:
            raise self.error
        return ResearchResult(content=self.content, citations=self.citations, model="fake")


class FakeDraftProvider(DraftProvider):
    name = "fake-draft"

    def __init__(self, content: str = "# Draft\n\nBody", error: Exception | None = None) -> None:
        self.content = content
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def draft(self, title: str, research: str) -> DraftResult:
        self.calls.append((title, research))
        if self.error is not None:
            raise self.error
        return DraftResult(content=self.content, model="fake")


class RecordingStore(JsonContentStore):
    """JSON store that records every write and create call."""

    def __init__(self, path: Path) -> None:
        super().__init__(path)
        self.writes: list[ContentItem] = []
        self.creates: list[ContentItem] = []
        self.messages: list[str] = []

    def write(self, item: ContentItem, *, message: str = "") -> ContentItem:
        self.writes.append(item)
        self.messages.append(message)
        return super().write(item, message=message)

    def create(self, item, *, parent_id=None, message=""):
        created = super().create(item, parent_id=parent_id, message=message)
        self.creates.append(created)
        self.messages.append(message)
        return created


def seed(store: JsonContentStore, *items: ContentItem) -> list[ContentItem]:
    """Create items in the store's file, bypassing any recording, and return them."""
    direct = JsonContentStore(store.path)
    return [direct.create(item) for item in items]


def make_item(
    title: str = "Foo",
    status: ContentStatus = ContentStatus.READY_FOR_RESEARCH,
    **kwargs: object,
) -> ContentItem:
    return ContentItem(title=title, status=status, **kwargs)  # type: ignore[arg-type]


def http_response(payload: object) -> MagicMock:
    """A urlopen() context-manager response returning ``payload`` as JSON."""
    mock_response = MagicMock()
    mock_response.read.return_value = json.dumps(payload).encode()
    mock_response.__enter__ = lambda s: s
    mock_response.__exit__ = MagicMock(return_value=False)
    return mock_response


