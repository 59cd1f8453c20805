"""Tests for MarkdownContentStore (frontmatter files, optional git commits)."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from editorial.content.models import ContentItem, ContentStatus
from editorial.errors import ItemNotFoundError, StoreError, StoreWriteError
from editorial.stores.markdown import MarkdownContentStore
from editorial.stores.paths import new_item_path, slugify, unique_path
from editorial.workflow import Stage
from editorial.workflow.state_machine import WorkflowStateMachine
from fakes import FakeResearchProvider


def _write(root: Path, rel: str, title: str, status: str, body: str = "") -> None:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"---\ntitle: {title}\nstatus: {status}\n---\n\n{body}", encoding="utf-8")


def _completed(returncode: int = 0, stdout: str = "", stderr: str = "") -> MagicMock:
    result = MagicMock(spec=subprocess.CompletedProcess)
    result.returncode = returncode
    result.stdout = stdout
    result.stderr = stderr
    return result


class TestPaths:
    def test_slugify(self):
        assert slugify("Getting Things Done!") == "getting-things-done"
        assert slugify("Café Zettelkasten") == "cafe-zettelkasten"
        assert slugify("???") == "untitled"

    def test_new_item_path_for_draft(self):
        item = ContentItem(title="GTD", status=ContentStatus.READY_FOR_REVIEW)
        assert new_item_path(item, research_dir="research", drafts_dir="drafts/") == (
            "drafts/gtd-draft.md"
        )

    def test_new_item_path_for_research(self):
        item = ContentItem(title="GTD", status=ContentStatus.READY_FOR_RESEARCH)
        assert new_item_path(item, research_dir="research", drafts_dir="drafts") == (
            "research/gtd.md"
        )

    def test_unique_path(self):
        taken = {"drafts/gtd-draft.md", "drafts/gtd-draft-2.md"}
        assert unique_path("drafts/gtd-draft.md", taken.__contains__) == "drafts/gtd-draft-3.md"
        assert unique_path("drafts/new.md", taken.__contains__) == "drafts/new.md"


class TestRead:
    def test_query_by_status(self, tmp_path: Path):
        _write(tmp_path, "research/a.md", "A", "Ready for Research")
        _write(tmp_path, "research/b.md", "B", "Ready for Draft", "notes")
        _write(tmp_path, "topics/c.md", "C", "Ready for Research")
        store = MarkdownContentStore(tmp_path)

        ready = store.query_by_status(ContentStatus.READY_FOR_RESEARCH)
        assert [i.id for i in ready] == ["research/a.md", "topics/c.md"]
        assert store.query_by_status(ContentStatus.READY_FOR_DRAFT)[0].body == "notes"

    def test_skips_invalid_and_hidden_files(self, tmp_path: Path):
        _write(tmp_path, "research/bad.md", "Bad", "Nonsense")
        _write(tmp_path, ".git/x.md", "Hidden", "Ready for Research")
        (tmp_path / "notes.md").write_text("no frontmatter", encoding="utf-8")
        store = MarkdownContentStore(tmp_path)
        assert store.query_by_status(ContentStatus.READY_FOR_RESEARCH) == []
        assert store.all() == []

    def test_skips_files_that_are_not_utf8(self, tmp_path: Path):
        _write(tmp_path, "research/good.md", "Good", "Ready for Research")
        (tmp_path / "research/bad.md").write_bytes(b"---\ntitle: X\n\xff\xfe")
        store = MarkdownContentStore(tmp_path)

        ready = store.query_by_status(ContentStatus.READY_FOR_RESEARCH)
        assert [i.id for i in ready] == ["research/good.md"]
        assert [i.id for i in store.all()] == ["research/good.md"]
        with pytest.raises(StoreError, match="not valid UTF-8"):
            store.read("research/bad.md")

    def test_research_run_survives_undecodable_file(self, tmp_path: Path):
        _write(tmp_path, "research/good.md", "Good", "Ready for Research")
        (tmp_path / "research/bad.md").write_bytes(b"---\ntitle: X\n\xff\xfe")
        store = MarkdownContentStore(tmp_path)

        report = WorkflowStateMachine(store, research_provider=FakeResearchProvider()).run(
            Stage.RESEARCH
        )

        assert report.succeeded == 1
        assert store.read("research/good.md").status == ContentStatus.READY_FOR_DRAFT

    def test_read_missing(self, tmp_path: Path):
        with pytest.raises(ItemNotFoundError):
            MarkdownContentStore(tmp_path).read("research/none.md")

    def test_read_outside_root(self, tmp_path: Path):
        store = MarkdownContentStore(tmp_path / "content")
        with pytest.raises(ItemNotFoundError):
            store.read("../secrets.md")

    def test_missing_root_is_empty(self, tmp_path: Path):
        store = MarkdownContentStore(tmp_path / "nowhere")
        assert store.query_by_status(ContentStatus.READY_FOR_RESEARCH) == []


class TestWrite:
    def test_write_updates_frontmatter_and_body(self, tmp_path: Path):
        _write(tmp_path, "research/a.md", "A", "Ready for Research")
        store = MarkdownContentStore(tmp_path)
        item = store.read("research/a.md")

        persisted = store.write(item.with_status(ContentStatus.READY_FOR_DRAFT, body="findings"))

        assert persisted.last_modified is not None
        text = (tmp_path / "research/a.md").read_text(encoding="utf-8")
        assert "status: Ready for Draft" in text
        assert "last_modified:" in text
        assert text.endswith("findings")
        assert store.read("research/a.md").status == ContentStatus.READY_FOR_DRAFT

    def test_write_missing_raises(self, tmp_path: Path):
        store = MarkdownContentStore(tmp_path)
        with pytest.raises(ItemNotFoundError):
            store.write(ContentItem(id="x.md", title="X", status=ContentStatus.ERROR))

    def test_create_draft_path_and_collision(self, tmp_path: Path):
        store = MarkdownContentStore(tmp_path)
        draft = ContentItem(title="GTD", status=ContentStatus.READY_FOR_REVIEW, body="Post")
        first = store.create(draft, parent_id="research/gtd.md")
        second = store.create(draft, parent_id="research/gtd.md")

        assert first.id == "drafts/gtd-draft.md"
        assert second.id == "drafts/gtd-draft-2.md"
        assert first.related_id == "research/gtd.md"
        assert store.read(first.id).body == "Post"

    def test_create_existing_explicit_id_rejected(self, tmp_path: Path):
        _write(tmp_path, "research/a.md", "A", "Ready for Research")
        store = MarkdownContentStore(tmp_path)
        with pytest.raises(StoreWriteError):
            store.create(
                ContentItem(id="research/a.md", title="A", status=ContentStatus.READY_FOR_RESEARCH)
            )


class TestGitCommits:
    def test_write_commits_with_message(self, tmp_path: Path):
        _write(tmp_path, "research/a.md", "A", "Ready for Research")
        store = MarkdownContentStore(tmp_path, git_commit=True)
        item = store.read("research/a.md")

        with patch("editorial.stores.markdown.subprocess.run", return_value=_completed()) as run:
            store.write(
                item.with_status(ContentStatus.RESEARCH_IN_PROGRESS),
                message="WIP: Start research for A",
            )

        commands = [c.args[0] for c in run.call_args_list]
        assert commands[0] == ["git", "-C", str(tmp_path), "add", "--", "research/a.md"]
        assert commands[1][:5] == ["git", "-C", str(tmp_path), "commit", "-m"]
        assert commands[1][5] == "WIP: Start research for A"

    def test_failed_commit_restores_previous_file(self, tmp_path: Path):
        _write(tmp_path, "research/a.md", "A", "Ready for Research")
        original = (tmp_path / "research/a.md").read_text(encoding="utf-8")
        store = MarkdownContentStore(tmp_path, git_commit=True)
        item = store.read("research/a.md")

        results = [_completed(), _completed(returncode=1, stderr="fatal: boom"), _completed()]
        with patch("editorial.stores.markdown.subprocess.run", side_effect=results) as run:
            with pytest.raises(StoreWriteError, match="git commit failed"):
                store.write(item.with_status(ContentStatus.RESEARCH_IN_PROGRESS))

        assert (tmp_path / "research/a.md").read_text(encoding="utf-8") == original
        assert run.call_args_list[2].args[0] == [
            "git", "-C", str(tmp_path), "reset", "-q", "--", "research/a.md"
        ]

    def test_failed_unstage_keeps_commit_error(self, tmp_path: Path):
        _write(tmp_path, "research/a.md", "A", "Ready for Research")
        store = MarkdownContentStore(tmp_path, git_commit=True)
        item = store.read("research/a.md")

        results = [
            _completed(),
            _completed(returncode=1, stderr="fatal: boom"),
            _completed(returncode=128, stderr="index.lock exists"),
        ]
        with patch("editorial.stores.markdown.subprocess.run", side_effect=results):
            with pytest.raises(StoreWriteError, match="git commit failed"):
                store.write(item.with_status(ContentStatus.RESEARCH_IN_PROGRESS))

    def test_failed_commit_removes_created_file(self, tmp_path: Path):
        store = MarkdownContentStore(tmp_path, git_commit=True)
        with patch(
            "editorial.stores.markdown.subprocess.run",
            return_value=_completed(returncode=128, stderr="not a git repository"),
        ):
            with pytest.raises(StoreWriteError, match="git add failed"):
                store.create(ContentItem(title="New", status=ContentStatus.READY_FOR_REVIEW))
        assert not (tmp_path / "drafts/new-draft.md").exists()

    def test_nothing_to_commit_is_ok(self, tmp_path: Path):
        _write(tmp_path, "research/a.md", "A", "Ready for Research")
        store = MarkdownContentStore(tmp_path, git_commit=True)
        item = store.read("research/a.md")
        results = [_completed(), _completed(returncode=1, stdout="nothing to commit")]
        with patch("editorial.stores.markdown.subprocess.run", side_effect=results):
            store.write(item)

    def test_git_missing(self, tmp_path: Path):
        _write(tmp_path, "research/a.md", "A", "Ready for Research")
        store = MarkdownContentStore(tmp_path, git_commit=True)
        item = store.read("research/a.md")
        with patch("editorial.stores.markdown.subprocess.run", side_effect=FileNotFoundError):
            with pytest.raises(StoreWriteError, match="git executable not found"):
                store.write(item)

    def test_no_git_calls_when_disabled(self, tmp_path: Path):
        _write(tmp_path, "research/a.md", "A", "Ready for Research")
        store = MarkdownContentStore(tmp_path)
        with patch("editorial.stores.markdown.subprocess.run") as run:
            store.write(store.read("research/a.md"))
        run.assert_not_called()
