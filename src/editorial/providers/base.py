"""Provider interfaces consumed by the workflow state machine."""

from __future__ import annotations

from abc import ABC, abstractmethod

from editorial.content.models import DraftResult, ResearchResult


class ResearchProvider(ABC):
    """Turns a topic title into research findings with citations."""

    name: str = "research"

    @abstractmethod
    def research(self, title: str) -> ResearchResult:
        """Research ``title``.

        Raises:
            ProviderError: On transport failures or malformed responses.
        """


class DraftProvider(ABC):
    """Turns a title and research body into a draft article."""

    name: str = "draft"

    @abstractmethod
    def draft(self, title: str, research: str) -> DraftResult:
        """Write a draft for ``title`` from ``research``.

        Raises:
            ProviderError: On transport failures or an empty response.
        """
