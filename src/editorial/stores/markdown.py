"""Markdown-file content store with optional git commits.

Each item is one ``.md`` file with YAML frontmatter under a content root.
The item id is the file path relative to that root. With ``git_commit``
enabled every write and create becomes exactly one commit, so the
repository history doubles as the status-transition log.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from editorial.content.frontmatter import document_from_item, item_from_document
from editorial.content.models import ContentItem, ContentStatus
from editorial.content.store import ContentStore, atomic_write, utc_now
from editorial.errors import ItemNotFoundError, StoreError, StoreWriteError
from editorial.stores.paths import new_item_path, unique_path

logger = logging.getLogger(__name__)


class MarkdownContentStore(ContentStore):
    """Content store over a directory of markdown files."""

    def __init__(
        self,
        root: Path,
        *,
        research_dir: str = "research",
        drafts_dir: str = "drafts",
        git_commit: bool = False,
        git_timeout: int = 60,
    ) -> None:
        self.root = root
        self.research_dir = research_dir
        self.drafts_dir = drafts_dir
        self.git_commit = git_commit
        self.git_timeout = git_timeout

    # ── Private helpers ──────────────────────────────────────────

    def _resolve(self, item_id: str) -> Path:
        path = (self.root / item_id).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise ItemNotFoundError(f"Item path escapes content root: {item_id}")
        return path

    def _item_id(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    def _iter_files(self) -> list[Path]:
        if not self.root.exists():
            return []
        return sorted(
            p
            for p in self.root.rglob("*.md")
            if not any(part.startswith(".") for part in p.relative_to(self.root).parts)
        )

    def _git(self, *args: str) -> subprocess.CompletedProcess[str]:
        cmd = ["git", "-C", str(self.root), *args]
        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.git_timeout,
            )
        except FileNotFoundError as exc:
            raise StoreWriteError("git executable not found on PATH") from exc
        except subprocess.TimeoutExpired as exc:
            raise StoreWriteError(f"git {args[0]} timed out after {self.git_timeout}s") from exc

    def _commit(self, item_id: str, message: str) -> None:
        add = self._git("add", "--", item_id)
        if add.returncode != 0:
            raise StoreWriteError(f"git add failed for {item_id}: {add.stderr.strip()[:500]}")
        commit = self._git("commit", "-m", message or f"Update {item_id}", "--", item_id)
        if commit.returncode != 0:
            output = f"{commit.stdout}\n{commit.stderr}"
            if "nothing to commit" in output or "no changes added" in output:
                logger.debug("Nothing to commit for %s", item_id)
                return
            raise StoreWriteError(
                f"git commit failed for {item_id}: {commit.stderr.strip()[:500]}"
            )
        logger.info("Committed %s: %s", item_id, message)

    def _persist(self, path: Path, item: ContentItem, message: str, previous: str | None) -> None:
        """Write the file, then commit; restore the previous file if the commit fails."""
        try:
            atomic_write(path, document_from_item(item))
        except OSError as exc:
            raise StoreWriteError(f"Failed to write {path}: {exc}") from exc
        if not self.git_commit:
            return
        try:
            self._commit(item.id, message)
        except StoreWriteError:
            if previous is None:
                path.unlink(missing_ok=True)
            else:
                atomic_write(path, previous)
            self._unstage(item.id)
            raise

    def _unstage(self, item_id: str) -> None:
        try:
            result = self._git("reset", "-q", "--", item_id)
        except StoreWriteError as exc:
            logger.warning("Could not unstage %s: %s", item_id, exc)
            return
        if result.returncode != 0:
            logger.warning("git reset failed for %s: %s", item_id, result.stderr.strip()[:500])

    def _read_text(self, path: Path, item_id: str) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise StoreError(f"{item_id}: not valid UTF-8 ({exc.reason})") from exc

    # ── Read operations ──────────────────────────────────────────

    def query_by_status(self, status: ContentStatus) -> list[ContentItem]:
        items: list[ContentItem] = []
        for path in self._iter_files():
            item_id = self._item_id(path)
            try:
                item = item_from_document(item_id, self._read_text(path, item_id))
            except (StoreError, OSError) as exc:
                logger.warning("Skipping %s: %s", item_id, exc)
                continue
            if item.status == status:
                items.append(item)
        return items

    def read(self, item_id: str) -> ContentItem:
        path = self._resolve(item_id)
        if not path.is_file():
            raise ItemNotFoundError(f"Item not found: {item_id}")
        return item_from_document(item_id, self._read_text(path, item_id))

    def all(self) -> list[ContentItem]:
        """Return every parseable item, sorted by path."""
        items: list[ContentItem] = []
        for path in self._iter_files():
            item_id = self._item_id(path)
            try:
                items.append(item_from_document(item_id, self._read_text(path, item_id)))
            except (StoreError, OSError) as exc:
                logger.warning("Skipping %s: %s", path, exc)
        return items

    # ── Write operations ─────────────────────────────────────────

    def write(self, item: ContentItem, *, message: str = "") -> ContentItem:
        path = self._resolve(item.id)
        if not path.is_file():
            raise ItemNotFoundError(f"Item not found: {item.id}")
        previous = self._read_text(path, item.id)
        persisted = item.model_copy(update={"last_modified": utc_now()}, deep=True)
        self._persist(path, persisted, message, previous)
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
            lambda candidate: (self.root / candidate).exists(),
        )
        path = self._resolve(item_id)
        if path.exists():
            raise StoreWriteError(f"Item already exists: {item_id}")
        created = item.model_copy(
            update={
                "id": item_id,
                "related_id": parent_id if parent_id is not None else item.related_id,
                "last_modified": utc_now(),
            },
            deep=True,
        )
        self._persist(path, created, message, None)
        return created
