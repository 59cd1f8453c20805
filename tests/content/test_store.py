"""Tests for JsonContentStore, the single-file JSON backend."""

import json
from pathlib import Path

import pytest

from editorial.content.models import ContentItem, ContentStatus
from editorial.content.store import STORE_FILENAME, JsonContentStore
from editorial.errors import ItemNotFoundError, StoreWriteError


def _make_item(
    title: str = "Test Topic",
    status: ContentStatus = ContentStatus.READY_FOR_RESEARCH,
    **kwargs: object,
) -> ContentItem:
    """Helper to build a ContentItem with sensible defaults."""
    return ContentItem(title=title, status=status, **kwargs)  # type: ignore[arg-type]


class TestPath:
    def test_directory_gets_default_filename(self, tmp_path: Path):
        assert JsonContentStore(tmp_path).path == tmp_path / STORE_FILENAME

    def test_explicit_json_file_used(self, tmp_path: Path):
        path = tmp_path / "items.json"
        assert JsonContentStore(path).path == path


class TestCreate:
    def test_assigns_id_and_timestamp(self, tmp_path: Path):
        store = JsonContentStore(tmp_path)
        created = store.create(_make_item())
        assert len(created.id) == 32
        assert created.last_modified is not None

    def test_keeps_explicit_id(self, tmp_path: Path):
        store = JsonContentStore(tmp_path)
        assert store.create(_make_item(id="topic-1")).id == "topic-1"

    def test_links_parent(self, tmp_path: Path):
        store = JsonContentStore(tmp_path)
        parent = store.create(_make_item())
        child = store.create(
            _make_item(status=ContentStatus.READY_FOR_REVIEW), parent_id=parent.id
        )
        assert child.related_id == parent.id
        assert store.read(child.id).related_id == parent.id

    def test_duplicate_id_rejected(self, tmp_path: Path):
        store = JsonContentStore(tmp_path)
        store.create(_make_item(id="dup"))
        with pytest.raises(StoreWriteError):
            store.create(_make_item(id="dup"))

    def test_persists_to_disk(self, tmp_path: Path):
        store = JsonContentStore(tmp_path)
        store.create(_make_item(id="a"))
        data = json.loads((tmp_path / STORE_FILENAME).read_text(encoding="utf-8"))
        assert data["items"][0]["id"] == "a"
        assert data["items"][0]["status"] == "Ready for Research"


class TestRead:
    def test_missing_raises(self, tmp_path: Path):
        store = JsonContentStore(tmp_path)
        with pytest.raises(ItemNotFoundError, match="nope"):
            store.read("nope")

    def test_not_found_is_a_key_error(self, tmp_path: Path):
        store = JsonContentStore(tmp_path)
        with pytest.raises(KeyError):
            store.read("nope")

    def test_reads_writes_from_another_instance(self, tmp_path: Path):
        first = JsonContentStore(tmp_path)
        second = JsonContentStore(tmp_path)
        created = first.create(_make_item(id="a"))
        first.write(created.with_status(ContentStatus.RESEARCH_IN_PROGRESS))
        assert second.read("a").status == ContentStatus.RESEARCH_IN_PROGRESS


class TestQueryByStatus:
    def test_filters_exactly_in_store_order(self, tmp_path: Path):
        store = JsonContentStore(tmp_path)
        store.create(_make_item(id="a"))
        store.create(_make_item(id="b", status=ContentStatus.READY_FOR_DRAFT))
        store.create(_make_item(id="c"))
        ids = [i.id for i in store.query_by_status(ContentStatus.READY_FOR_RESEARCH)]
        assert ids == ["a", "c"]

    def test_has_status(self, tmp_path: Path):
        store = JsonContentStore(tmp_path)
        assert store.has_status(ContentStatus.READY_FOR_DRAFT) is False
        store.create(_make_item(status=ContentStatus.READY_FOR_DRAFT))
        assert store.has_status(ContentStatus.READY_FOR_DRAFT) is True

    def test_empty_store(self, tmp_path: Path):
        assert JsonContentStore(tmp_path).query_by_status(ContentStatus.ERROR) == []


class TestWrite:
    def test_returns_persisted_item(self, tmp_path: Path):
        store = JsonContentStore(tmp_path)
        created = store.create(_make_item(id="a"))
        persisted = store.write(created.with_status(ContentStatus.RESEARCH_IN_PROGRESS))
        assert persisted.status == ContentStatus.RESEARCH_IN_PROGRESS
        assert persisted.last_modified is not None
        assert persisted.last_modified >= created.last_modified

    def test_unknown_id_raises(self, tmp_path: Path):
        store = JsonContentStore(tmp_path)
        with pytest.raises(ItemNotFoundError):
            store.write(_make_item(id="ghost"))

    def test_writes_body_and_status_together(self, tmp_path: Path):
        store = JsonContentStore(tmp_path)
        created = store.create(_make_item(id="a"))
        store.write(created.with_status(ContentStatus.READY_FOR_DRAFT, body="findings"))
        fetched = store.read("a")
        assert fetched.status == ContentStatus.READY_FOR_DRAFT
        assert fetched.body == "findings"

    def test_all_returns_every_item(self, tmp_path: Path):
        store = JsonContentStore(tmp_path)
        store.create(_make_item(id="a"))
        store.create(_make_item(id="b", status=ContentStatus.ERROR, error_message="x"))
        assert [i.id for i in store.all()] == ["a", "b"]


class TestCorruptFile:
    def test_corrupt_file_treated_as_empty(self, tmp_path: Path):
        (tmp_path / STORE_FILENAME).write_text("{not json", encoding="utf-8")
        store = JsonContentStore(tmp_path)
        assert store.all() == []

    def test_no_temp_files_left_behind(self, tmp_path: Path):
        store = JsonContentStore(tmp_path)
        store.create(_make_item())
        assert [p.name for p in tmp_path.iterdir()] == [STORE_FILENAME]
