"""Shared fixtures for workflow and CLI tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from editorial.errors import ProviderError
from fakes import FakeDraftProvider, FakeResearchProvider, RecordingStore


@pytest.fixture
def store(tmp_path: Path) -> RecordingStore:
    return RecordingStore(tmp_path)


@pytest.fixture
def research_provider() -> FakeResearchProvider:
    return FakeResearchProvider()


@pytest.fixture
def draft_provider() -> FakeDraftProvider:
    return FakeDraftProvider()


@pytest.fixture
def failing_research_provider() -> FakeResearchProvider:
    return FakeResearchProvider(
        error=ProviderError("Perplexity API error: rate limited", status_code=429)
    )
