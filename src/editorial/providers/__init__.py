"""Research and draft providers, built from configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from editorial.providers.base import DraftProvider, ResearchProvider

if TYPE_CHECKING:
    from editorial.config import EditorialConfig

__all__ = [
    "DraftProvider",
    "ResearchProvider",
    "create_draft_provider",
    "create_research_provider",
]


def create_research_provider(config: EditorialConfig) -> ResearchProvider:
    """Build the research provider.

    Raises:
        ConfigurationError: If the Perplexity API key is missing.
    """
    from editorial.providers.perplexity import PerplexityResearchProvider

    section = config.require_perplexity()
    return PerplexityResearchProvider(
        section.api_key,
        model=section.model,
        temperature=section.temperature,
        max_tokens=section.max_tokens,
        context_size=section.context_size or None,
        search_domains=section.search_domains,
        timeout=section.timeout,
    )


def create_draft_provider(config: EditorialConfig) -> DraftProvider:
    """Build the draft provider.

    Raises:
        ConfigurationError: If the Claude API key is missing.
    """
    from editorial.providers.claude import ClaudeDraftProvider

    section = config.require_claude()
    return ClaudeDraftProvider(
        section.api_key,
        model=section.model,
        temperature=section.temperature,
        max_tokens=section.max_tokens,
        timeout=section.timeout,
    )
