"""Unified configuration loaded from .editorial.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.

Credentials are not required at load time; each factory checks the ones
it needs via the ``require_*`` helpers, so commands that never touch a
provider (``monitor``, ``status``) run without provider keys.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from editorial.content.models import ContentStatus
from editorial.errors import ConfigurationError
from editorial.workflow.stages import FailurePolicy

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".editorial.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
]
GLOBAL_CONFIG_PATH = Path.home() / ".config" / "editorial" / "config.toml"

STORE_BACKENDS = ("json", "markdown", "github", "notion")

DEFAULT_SEARCH_DOMAINS = [
    "-reddit.com",
    "-pinterest.com",
    "-quora.com",
    "-medium.com",
    "-wikipedia.org",
]


class StoreSectionConfig(BaseModel):
    """[store] section."""

    backend: str = "json"

    @field_validator("backend")
    @classmethod
    def _known_backend(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in STORE_BACKENDS:
            raise ValueError(f"store backend must be one of {', '.join(STORE_BACKENDS)}")
        return value


class JsonSectionConfig(BaseModel):
    """[json] section."""

    path: str = "."


class MarkdownSectionConfig(BaseModel):
    """[markdown] section."""

    root: str = "."
    research_dir: str = "research"
    drafts_dir: str = "drafts"
    git_commit: bool = False
    git_timeout: int = 60


class GitHubSectionConfig(BaseModel):
    """[github] section."""

    token: str = ""
    repository: str = ""
    branch: str = "main"
    research_dir: str = "research"
    drafts_dir: str = "drafts"
    content_dirs: list[str] = Field(default_factory=list)
    api_url: str = "https://api.github.com"
    timeout: int = 30


class NotionSectionConfig(BaseModel):
    """[notion] section."""

    api_key: str = ""
    database_id: str = ""
    drafts_database_id: str = ""
    status_property: str = "Status"
    status_property_type: str = "status"
    title_property: str = "Title"
    error_property: str = "Error"
    relation_property: str = "Blog Posts"
    last_modified_property: str = "Last Modified Date"
    batch_size: int = 100
    batch_delay: float = 0.3
    timeout: int = 30


class PerplexitySectionConfig(BaseModel):
    """[perplexity] section."""

    api_key: str = ""
    model: str = "sonar-deep-research"
    temperature: float = 0.2
    max_tokens: int = 7000
    context_size: str = "high"
    search_domains: list[str] = Field(default_factory=lambda: list(DEFAULT_SEARCH_DOMAINS))
    timeout: int = 600


class ClaudeSectionConfig(BaseModel):
    """[claude] section."""

    api_key: str = ""
    model: str = "claude-sonnet-4-6"
    temperature: float = 0.7
    max_tokens: int = 8192
    timeout: int = 600


class WorkflowSectionConfig(BaseModel):
    """[workflow] section."""

    research_failure_policy: FailurePolicy = FailurePolicy.ERROR
    draft_failure_policy: FailurePolicy = FailurePolicy.ERROR
    processed_status: ContentStatus = ContentStatus.DRAFT_COMPLETE

    @field_validator("processed_status")
    @classmethod
    def _terminal_source_status(cls, value: ContentStatus) -> ContentStatus:
        allowed = (ContentStatus.DRAFT_COMPLETE, ContentStatus.RESEARCH_PROCESSED)
        if value not in allowed:
            raise ValueError(
                f"processed_status must be {allowed[0].value!r} or {allowed[1].value!r}"
            )
        return value


class SchedulerSectionConfig(BaseModel):
    """[scheduler] section."""

    interval_minutes: float = 5.0
    research: bool = True
    draft: bool = True


class EditorialConfig(BaseModel):
    """Top-level configuration model for the editorial pipeline."""

    store: StoreSectionConfig = Field(default_factory=StoreSectionConfig)
    json_store: JsonSectionConfig = Field(default_factory=JsonSectionConfig, alias="json")
    markdown: MarkdownSectionConfig = Field(default_factory=MarkdownSectionConfig)
    github: GitHubSectionConfig = Field(default_factory=GitHubSectionConfig)
    notion: NotionSectionConfig = Field(default_factory=NotionSectionConfig)
    perplexity: PerplexitySectionConfig = Field(default_factory=PerplexitySectionConfig)
    claude: ClaudeSectionConfig = Field(default_factory=ClaudeSectionConfig)
    workflow: WorkflowSectionConfig = Field(default_factory=WorkflowSectionConfig)
    scheduler: SchedulerSectionConfig = Field(default_factory=SchedulerSectionConfig)

    model_config = {"populate_by_name": True}

    def dump(self) -> dict:
        """Dump using TOML section names (``json`` rather than ``json_store``)."""
        return self.model_dump(by_alias=True)

    # ── Credential checks ────────────────────────────────────────

    def require_notion(self) -> NotionSectionConfig:
        if not self.notion.api_key:
            raise ConfigurationError("Notion API key is not configured (NOTION_API_KEY)")
        if not self.notion.database_id:
            raise ConfigurationError(
                "Notion database id is not configured (NOTION_BLOG_POSTS_ID)"
            )
        return self.notion

    def require_github(self) -> GitHubSectionConfig:
        if not self.github.token:
            raise ConfigurationError("GitHub token is not configured (GITHUB_TOKEN)")
        owner, _, repo = self.github.repository.partition("/")
        if not owner or not repo:
            raise ConfigurationError(
                "GitHub repository must be set as 'owner/repo' (GITHUB_REPOSITORY)"
            )
        return self.github

    def require_perplexity(self) -> PerplexitySectionConfig:
        if not self.perplexity.api_key:
            raise ConfigurationError(
                "Perplexity API key is not configured (PERPLEXITY_API_KEY)"
            )
        return self.perplexity

    def require_claude(self) -> ClaudeSectionConfig:
        if not self.claude.api_key:
            raise ConfigurationError("Claude API key is not configured (ANTHROPIC_API_KEY)")
        return self.claude


def load_config(path: str | Path | None = None) -> EditorialConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .editorial.toml in CWD
    3. ~/.config/editorial/config.toml

    Then overlay environment variables.

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged EditorialConfig.

    Raises:
        ConfigurationError: If the file holds values of the wrong type.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        if not data and GLOBAL_CONFIG_PATH.exists():
            data = _load_toml(GLOBAL_CONFIG_PATH)
            logger.info("Loaded config from %s", GLOBAL_CONFIG_PATH)

    config = _validate(data) if data else EditorialConfig()
    return _apply_env_vars(config)


def merge_cli_overrides(config: EditorialConfig, **cli_kwargs: object) -> EditorialConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).

    Args:
        config: Base config.
        **cli_kwargs: CLI flag values, keyed by flag name
            (e.g. ``store``, ``content_dir``, ``interval``).

    Returns:
        Updated config with CLI overrides applied.
    """
    data = config.dump()

    mapping: dict[str, tuple[str, str]] = {
        "store": ("store", "backend"),
        "json_path": ("json", "path"),
        "content_dir": ("markdown", "root"),
        "git_commit": ("markdown", "git_commit"),
        "repository": ("github", "repository"),
        "branch": ("github", "branch"),
        "research_model": ("perplexity", "model"),
        "draft_model": ("claude", "model"),
        "interval": ("scheduler", "interval_minutes"),
        "research_failure_policy": ("workflow", "research_failure_policy"),
        "draft_failure_policy": ("workflow", "draft_failure_policy"),
    }

    for key, value in cli_kwargs.items():
        if value is None:
            continue
        if key in mapping:
            section, field = mapping[key]
            data[section][field] = value
        else:
            logger.debug("Ignoring unknown CLI override %s", key)

    return _validate(data)


def _validate(data: dict) -> EditorialConfig:
    try:
        return EditorialConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: EditorialConfig) -> EditorialConfig:
    """Apply environment variable overrides to config."""
    data = config.dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "EDITORIAL_STORE": ("store", "backend"),
        "NOTION_API_KEY": ("notion", "api_key"),
        "NOTION_BLOG_POSTS_ID": ("notion", "database_id"),
        "NOTION_DRAFTS_ID": ("notion", "drafts_database_id"),
        "PERPLEXITY_API_KEY": ("perplexity", "api_key"),
        "CLAUDE_API_KEY": ("claude", "api_key"),
        "ANTHROPIC_API_KEY": ("claude", "api_key"),
        "GITHUB_TOKEN": ("github", "token"),
        "GITHUB_REPOSITORY": ("github", "repository"),
        "GITHUB_BRANCH": ("github", "branch"),
        "EDITORIAL_POLL_INTERVAL": ("scheduler", "interval_minutes"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value:
            data[section][field] = value

    # One content directory serves both file-backed stores.
    content_dir = os.environ.get("EDITORIAL_CONTENT_DIR")
    if content_dir:
        data["json"]["path"] = content_dir
        data["markdown"]["root"] = content_dir

    return _validate(data)
