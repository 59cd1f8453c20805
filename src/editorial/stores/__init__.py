"""Content store backends and the factory that picks one from config."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from editorial.content.store import ContentStore, JsonContentStore

if TYPE_CHECKING:
    from editorial.config import EditorialConfig

__all__ = ["ContentStore", "JsonContentStore", "create_store"]


def create_store(config: EditorialConfig) -> ContentStore:
    """Create the content store selected by ``[store] backend``.

    Args:
        config: Loaded configuration.

    Returns:
        A ContentStore instance for the backend.

    Raises:
        ConfigurationError: If the backend's credentials are missing.
    """
    backend = config.store.backend

    if backend == "json":
        return JsonContentStore(Path(config.json_store.path))

    if backend == "markdown":
        from editorial.stores.markdown import MarkdownContentStore

        md = config.markdown
        return MarkdownContentStore(
            Path(md.root),
            research_dir=md.research_dir,
            drafts_dir=md.drafts_dir,
            git_commit=md.git_commit,
            git_timeout=md.git_timeout,
        )

    if backend == "github":
        from editorial.stores.github import GitHubAPIClient, GitHubContentStore

        gh = config.require_github()
        client = GitHubAPIClient(
            gh.token,
            gh.repository,
            branch=gh.branch,
            api_url=gh.api_url,
            timeout=gh.timeout,
        )
        return GitHubContentStore(
            client,
            content_dirs=gh.content_dirs or None,
            research_dir=gh.research_dir,
            drafts_dir=gh.drafts_dir,
        )

    from editorial.stores.notion import NotionAPIClient, NotionContentStore

    notion = config.require_notion()
    return NotionContentStore(
        NotionAPIClient(notion.api_key, timeout=notion.timeout),
        database_id=notion.database_id,
        drafts_database_id=notion.drafts_database_id or None,
        status_property=notion.status_property,
        status_property_type=notion.status_property_type,
        title_property=notion.title_property,
        error_property=notion.error_property,
        relation_property=notion.relation_property,
        last_modified_property=notion.last_modified_property,
        batch_size=notion.batch_size,
        batch_delay=notion.batch_delay,
    )
