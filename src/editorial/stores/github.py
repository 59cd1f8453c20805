"""GitHub-repository content store via the REST contents API.

Items are markdown files with YAML frontmatter, exactly as in
MarkdownContentStore, but read and written through the GitHub API so the
pipeline can run without a local checkout. Every write is a single
``PUT /contents`` call, which GitHub turns into a single commit.
"""

from __future__ import annotations

import base64
import json
import logging
import urllib.error
import urllib.parse
import urllib.request

from editorial.content.frontmatter import document_from_item, item_from_document
from editorial.content.models import ContentItem, ContentStatus
from editorial.content.store import ContentStore, utc_now
from editorial.errors import ItemNotFoundError, StoreError, StoreWriteError
from editorial.stores.paths import new_item_path, unique_path

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"


class GitHubAPIClient:
    """Minimal client for the parts of the GitHub REST API the store needs."""

    def __init__(
        self,
        token: str,
        repository: str,
        *,
        branch: str = "main",
        api_url: str = GITHUB_API_URL,
        timeout: int = 30,
    ) -> None:
        owner, _, repo = repository.partition("/")
        if not owner or not repo:
            raise ValueError(f"repository must look like 'owner/repo', got {repository!r}")
        self.token = token
        self.owner = owner
        self.repo = repo
        self.branch = branch
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    def _request(self, method: str, path: str, data: dict | None = None) -> dict | list:
        """Make an authenticated request and return the decoded JSON body."""
        url = f"{self.api_url}{path}"
        body = json.dumps(data).encode("utf-8") if data is not None else None
        req = urllib.request.Request(
            url,
            data=body,
            method=method,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "Content-Type": "application/json",
                "User-Agent": "editorial-pipeline",
            },
        )
        with urllib.request.urlopen(req, timeout=self.timeout) as resp:
            return json.loads(resp.read().decode("utf-8"))

    def _contents_path(self, file_path: str) -> str:
        quoted = urllib.parse.quote(file_path.strip("/"))
        return f"/repos/{self.owner}/{self.repo}/contents/{quoted}"

    def get_file(self, file_path: str) -> tuple[str, str]:
        """Return ``(text, sha)`` for a file on the configured branch."""
        ref = urllib.parse.quote(self.branch)
        data = self._request("GET", f"{self._contents_path(file_path)}?ref={ref}")
        if not isinstance(data, dict) or data.get("type") != "file":
            raise StoreError(f"Path {file_path} is not a file")
        try:
            text = base64.b64decode(data.get("content", "")).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise StoreError(f"{file_path}: not valid UTF-8 ({exc.reason})") from exc
        return text, data["sha"]

    def put_file(self, file_path: str, text: str, message: str, sha: str | None = None) -> dict:
        """Create or update a file as one commit on the configured branch."""
        payload: dict = {
            "message": message,
            "content": base64.b64encode(text.encode("utf-8")).decode("ascii"),
            "branch": self.branch,
        }
        if sha:
            payload["sha"] = sha
        result = self._request("PUT", self._contents_path(file_path), payload)
        return result if isinstance(result, dict) else {}

    def list_markdown_files(self) -> list[str]:
        """List every ``.md`` path on the branch via the recursive tree API."""
        ref = urllib.parse.quote(self.branch, safe="")
        data = self._request(
            "GET", f"/repos/{self.owner}/{self.repo}/git/trees/{ref}?recursive=1"
        )
        if not isinstance(data, dict):
            return []
        if data.get("truncated"):
            logger.warning("GitHub tree listing for %s/%s was truncated", self.owner, self.repo)
        return sorted(
            entry["path"]
            for entry in data.get("tree", [])
            if entry.get("type") == "blob" and entry.get("path", "").endswith(".md")
        )


def _http_error(exc: urllib.error.HTTPError) -> str:
    try:
        detail = json.loads(exc.read().decode("utf-8")).get("message", "")
    except (ValueError, OSError, AttributeError):
        detail = ""
    return f"GitHub API error {exc.code}: {detail or exc.reason}"


class GitHubContentStore(ContentStore):
    """Content store over markdown files in a GitHub repository."""

    def __init__(
        self,
        client: GitHubAPIClient,
        *,
        content_dirs: list[str] | None = None,
        research_dir: str = "research",
        drafts_dir: str = "drafts",
    ) -> None:
        self.client = client
        self.research_dir = research_dir
        self.drafts_dir = drafts_dir
        self.content_dirs = [d.strip("/") for d in (content_dirs or [research_dir, drafts_dir])]

    def _in_scope(self, path: str) -> bool:
        return any(path.startswith(f"{d}/") for d in self.content_dirs if d) or not any(
            self.content_dirs
        )

    def _fetch(self, item_id: str) -> tuple[str, str]:
        try:
            return self.client.get_file(item_id)
        except urllib.error.HTTPError as exc:
            if exc.code == 404:
                raise ItemNotFoundError(f"Item not found: {item_id}", status_code=404) from exc
            raise StoreError(_http_error(exc), status_code=exc.code) from exc
        except urllib.error.URLError as exc:
            raise StoreError(f"GitHub API unreachable: {exc.reason}") from exc

    def _put(self, item: ContentItem, message: str, sha: str | None) -> None:
        try:
            self.client.put_file(item.id, document_from_item(item), message, sha)
        except urllib.error.HTTPError as exc:
            raise StoreWriteError(_http_error(exc), status_code=exc.code) from exc
        except urllib.error.URLError as exc:
            raise StoreWriteError(f"GitHub API unreachable: {exc.reason}") from exc
        logger.info("Committed %s: %s", item.id, message)

    def _exists(self, item_id: str) -> bool:
        try:
            self._fetch(item_id)
        except ItemNotFoundError:
            return False
        return True

    # ── Read operations ──────────────────────────────────────────

    def query_by_status(self, status: ContentStatus) -> list[ContentItem]:
        return [item for item in self.all() if item.status == status]

    def all(self) -> list[ContentItem]:
        """Return every parseable item in the configured directories."""
        try:
            paths = self.client.list_markdown_files()
        except urllib.error.HTTPError as exc:
            raise StoreError(_http_error(exc), status_code=exc.code) from exc
        except urllib.error.URLError as exc:
            raise StoreError(f"GitHub API unreachable: {exc.reason}") from exc

        items: list[ContentItem] = []
        for path in paths:
            if not self._in_scope(path):
                continue
            try:
                text, _sha = self._fetch(path)
                items.append(item_from_document(path, text))
            except StoreError as exc:
                logger.warning("Skipping %s: %s", path, exc)
        return items

    def read(self, item_id: str) -> ContentItem:
        text, _sha = self._fetch(item_id)
        return item_from_document(item_id, text)

    # ── Write operations ─────────────────────────────────────────

    def write(self, item: ContentItem, *, message: str = "") -> ContentItem:
        # Always use the current blob sha so the update applies to the latest commit.
        _text, sha = self._fetch(item.id)
        persisted = item.model_copy(update={"last_modified": utc_now()}, deep=True)
        self._put(persisted, message or f"Update {item.id}", sha)
        return persisted

    def create(
        self,
        item: ContentItem,
        *,
        parent_id: str | None = None,
        message: str = "",
    ) -> ContentItem:
        item_id = item.id or unique_path(
            new_item_path(item, research_dir=self.research_dir, drafts_dir=self.drafts_dir),
            self._exists,
        )
        created = item.model_copy(
            update={
                "id": item_id,
                "related_id": parent_id if parent_id is not None else item.related_id,
                "last_modified": utc_now(),
            },
            deep=True,
        )
        self._put(created, message or f"Create {item_id}", None)
        return created
