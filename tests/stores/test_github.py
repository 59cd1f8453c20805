"""Tests for GitHubContentStore over the contents API."""

from __future__ import annotations

import base64
import io
import json
import urllib.error
from unittest.mock import patch

import pytest

from editorial.content.models import ContentItem, ContentStatus
from editorial.errors import ItemNotFoundError, StoreError, StoreWriteError
from editorial.stores.github import GitHubAPIClient, GitHubContentStore
from fakes import http_response

DOC = "---\ntitle: GTD\nstatus: Ready for Draft\n---\n\nResearch notes\n"


def _file(text: str, sha: str = "sha-1") -> dict:
    return {
        "type": "file",
        "sha": sha,
        "content": base64.b64encode(text.encode("utf-8")).decode("ascii"),
    }


def _http_error(code: int, message: str = "Not Found") -> urllib.error.HTTPError:
    body = io.BytesIO(json.dumps({"message": message}).encode())
    return urllib.error.HTTPError("https://api.github.com/x", code, message, {}, body)


def _store() -> GitHubContentStore:
    return GitHubContentStore(GitHubAPIClient("tok", "acme/content", branch="main"))


class TestClient:
    def test_repository_format_checked(self):
        with pytest.raises(ValueError):
            GitHubAPIClient("tok", "no-slash")

    def test_get_file_request(self):
        client = GitHubAPIClient("tok", "acme/content", branch="dev")
        with patch("urllib.request.urlopen", return_value=http_response(_file(DOC))) as urlopen:
            text, sha = client.get_file("research/gtd.md")

        assert text == DOC
        assert sha == "sha-1"
        req = urlopen.call_args[0][0]
        assert req.full_url == (
            "https://api.github.com/repos/acme/content/contents/research/gtd.md?ref=dev"
        )
        assert req.method == "GET"
        assert req.get_header("Authorization") == "Bearer tok"

    def test_put_file_request(self):
        client = GitHubAPIClient("tok", "acme/content")
        with patch("urllib.request.urlopen", return_value=http_response({})) as urlopen:
            client.put_file("research/gtd.md", "hello", "msg", sha="abc")

        req = urlopen.call_args[0][0]
        assert req.method == "PUT"
        body = json.loads(req.data)
        assert body["message"] == "msg"
        assert body["sha"] == "abc"
        assert body["branch"] == "main"
        assert base64.b64decode(body["content"]).decode() == "hello"

    def test_put_file_without_sha(self):
        client = GitHubAPIClient("tok", "acme/content")
        with patch("urllib.request.urlopen", return_value=http_response({})) as urlopen:
            client.put_file("drafts/new.md", "hello", "msg")
        assert "sha" not in json.loads(urlopen.call_args[0][0].data)


class TestQuery:
    def test_lists_tree_and_filters_status(self):
        tree = {
            "tree": [
                {"path": "research/gtd.md", "type": "blob"},
                {"path": "research/todo.md", "type": "blob"},
                {"path": "README.md", "type": "blob"},
                {"path": "research", "type": "tree"},
            ]
        }
        other = "---\ntitle: Todo\nstatus: Ready for Research\n---\n"
        responses = [
            http_response(tree),
            http_response(_file(DOC)),
            http_response(_file(other)),
        ]
        with patch("urllib.request.urlopen", side_effect=responses) as urlopen:
            items = _store().query_by_status(ContentStatus.READY_FOR_DRAFT)

        assert [i.id for i in items] == ["research/gtd.md"]
        assert items[0].body == "Research notes\n"
        # README.md is outside the content directories and never fetched.
        assert urlopen.call_count == 3

    def test_skips_file_that_is_not_utf8(self):
        tree = {
            "tree": [
                {"path": "research/bad.md", "type": "blob"},
                {"path": "research/gtd.md", "type": "blob"},
            ]
        }
        bad = {
            "type": "file",
            "sha": "sha-2",
            "content": base64.b64encode(b"---\ntitle: X\n\xff\xfe").decode("ascii"),
        }
        responses = [http_response(tree), http_response(bad), http_response(_file(DOC))]
        with patch("urllib.request.urlopen", side_effect=responses):
            items = _store().query_by_status(ContentStatus.READY_FOR_DRAFT)

        assert [i.id for i in items] == ["research/gtd.md"]

    def test_tree_failure_raises(self):
        with patch("urllib.request.urlopen", side_effect=_http_error(500, "boom")):
            with pytest.raises(StoreError) as exc_info:
                _store().query_by_status(ContentStatus.READY_FOR_DRAFT)
        assert exc_info.value.status_code == 500


class TestReadWrite:
    def test_read_404(self):
        with patch("urllib.request.urlopen", side_effect=_http_error(404)):
            with pytest.raises(ItemNotFoundError):
                _store().read("research/missing.md")

    def test_read_not_utf8(self):
        bad = {"type": "file", "sha": "s", "content": base64.b64encode(b"\xff").decode("ascii")}
        with patch("urllib.request.urlopen", return_value=http_response(bad)):
            with pytest.raises(StoreError, match="not valid UTF-8"):
                _store().read("research/bad.md")

    def test_write_uses_current_sha(self):
        item = ContentItem(
            id="research/gtd.md", title="GTD", status=ContentStatus.DRAFT_IN_PROGRESS, body="x"
        )
        responses = [http_response(_file(DOC, sha="current")), http_response({"content": {}})]
        with patch("urllib.request.urlopen", side_effect=responses) as urlopen:
            persisted = _store().write(item, message="WIP: Start draft for GTD")

        assert persisted.status == ContentStatus.DRAFT_IN_PROGRESS
        assert persisted.last_modified is not None
        put = urlopen.call_args_list[1][0][0]
        body = json.loads(put.data)
        assert body["sha"] == "current"
        assert body["message"] == "WIP: Start draft for GTD"
        assert "status: Draft In Progress" in base64.b64decode(body["content"]).decode()

    def test_write_conflict_is_store_write_error(self):
        item = ContentItem(id="research/gtd.md", title="GTD", status=ContentStatus.ERROR)
        responses = [http_response(_file(DOC)), _http_error(409, "sha mismatch")]
        with patch("urllib.request.urlopen", side_effect=responses):
            with pytest.raises(StoreWriteError, match="sha mismatch") as exc_info:
                _store().write(item)
        assert exc_info.value.status_code == 409

    def test_create_picks_free_path(self):
        draft = ContentItem(title="GTD", status=ContentStatus.READY_FOR_REVIEW, body="Post")
        responses = [
            http_response(_file(DOC)),  # drafts/gtd-draft.md exists
            _http_error(404),  # drafts/gtd-draft-2.md is free
            http_response({"content": {}}),
        ]
        with patch("urllib.request.urlopen", side_effect=responses) as urlopen:
            created = _store().create(draft, parent_id="research/gtd.md")

        assert created.id == "drafts/gtd-draft-2.md"
        assert created.related_id == "research/gtd.md"
        put = urlopen.call_args_list[2][0][0]
        assert put.method == "PUT"
        assert "sha" not in json.loads(put.data)
