"""Content store contract and the JSON-backed implementation.

A ContentStore reads, queries and writes ContentItems regardless of what
backs them. Every backend returns the persisted item from ``write`` and
``create`` so the caller can confirm the status it asked for actually
landed before moving on.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
import uuid
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from pathlib import Path

from editorial.content.models import ContentItem, ContentStatus
from editorial.errors import ItemNotFoundError, StoreWriteError
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

STORE_FILENAME = ".editorial-store.json"


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def atomic_write(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` via a temp file and rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp)
        raise


class ContentStore(ABC):
    """Uniform read/query/write access to content items."""

    @abstractmethod
    def query_by_status(self, status: ContentStatus) -> list[ContentItem]:
        """Return items currently in ``status``, in store order."""

    @abstractmethod
    def read(self, item_id: str) -> ContentItem:
        """Return the item with ``item_id``.

        Raises:
            ItemNotFoundError: If the identifier does not resolve.
        """

    @abstractmethod
    def write(self, item: ContentItem, *, message: str = "") -> ContentItem:
        """Persist status, body, error and metadata of an existing item.

        Args:
            item: The item to persist; ``item.id`` must already exist.
            message: Human-readable description of the transition. Stores
                with an audit trail record it (e.g. as a commit message).

        Returns:
            The item as persisted, with ``last_modified`` refreshed.
        """

    @abstractmethod
    def create(
        self,
        item: ContentItem,
        *,
        parent_id: str | None = None,
        message: str = "",
    ) -> ContentItem:
        """Create a new item, optionally linked to ``parent_id``.

        Returns:
            The created item, carrying its new id.
        """

    def has_status(self, status: ContentStatus) -> bool:
        """Check whether at least one item is in ``status``."""
        return bool(self.query_by_status(status))


# ---------------------------------------------------------------------------
# JSON file backend
# ---------------------------------------------------------------------------


class _StoreData(BaseModel):
    """Internal wrapper for JSON serialization."""

    items: list[ContentItem] = Field(default_factory=list)


class JsonContentStore(ContentStore):
    """JSON-backed store holding every item in one file.

    The file is re-read before every operation so that writes made by a
    previous invocation (or another store instance) are never hidden.
    """

    def __init__(self, path: Path) -> None:
        if path.is_dir() or path.suffix != ".json":
            path = path / STORE_FILENAME
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    # ── Private helpers ──────────────────────────────────────────

    def _load(self) -> _StoreData:
        if not self._path.exists():
            return _StoreData()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return _StoreData.model_validate(raw)
        except (json.JSONDecodeError, ValueError, KeyError):
            logger.warning("Corrupt content store at %s, starting fresh", self._path)
            return _StoreData()

    def _save(self, data: _StoreData) -> None:
        try:
            atomic_write(self._path, data.model_dump_json(indent=2))
        except OSError as exc:
            raise StoreWriteError(f"Failed to write {self._path}: {exc}") from exc

    @staticmethod
    def _index(data: _StoreData, item_id: str) -> int:
        for i, item in enumerate(data.items):
            if item.id == item_id:
                return i
        raise ItemNotFoundError(f"Item not found: {item_id}")

    # ── Read operations ──────────────────────────────────────────

    def query_by_status(self, status: ContentStatus) -> list[ContentItem]:
        return [item for item in self._load().items if item.status == status]

    def read(self, item_id: str) -> ContentItem:
        data = self._load()
        return data.items[self._index(data, item_id)]

    def all(self) -> list[ContentItem]:
        """Return every item in store order."""
        return list(self._load().items)

    # ── Write operations ─────────────────────────────────────────

    def write(self, item: ContentItem, *, message: str = "") -> ContentItem:
        data = self._load()
        idx = self._index(data, item.id)
        persisted = item.model_copy(update={"last_modified": utc_now()}, deep=True)
        data.items[idx] = persisted
        self._save(data)
        logger.debug("Wrote %s (%s): %s", item.id, persisted.status.value, message)
        return persisted

    def create(
        self,
        item: ContentItem,
        *,
        parent_id: str | None = None,
        message: str = "",
    ) -> ContentItem:
        data = self._load()
        new_id = item.id or uuid.uuid4().hex
        if any(existing.id == new_id for existing in data.items):
            raise StoreWriteError(f"Item already exists: {new_id}")
        created = item.model_copy(
            update={
                "id": new_id,
                "related_id": parent_id if parent_id is not None else item.related_id,
                "last_modified": utc_now(),
            },
            deep=True,
        )
        data.items.append(created)
        self._save(data)
        logger.debug("Created %s (%s): %s", new_id, created.status.value, message)
        return created
