"""Notion-database content store over the public REST API.

Status, title, error message, relation and last-modified date are page
properties; the body is the page's block children, converted to and from
markdown by ``notion_blocks``. Property names are configurable because
they are part of each workspace's database schema.
"""

from __future__ import annotations

import json
import logging
import time
import urllib.error
import urllib.request
from collections.abc import Callable
from datetime import datetime
from typing import Any

from editorial.content.models import ContentItem, ContentStatus
from editorial.content.store import ContentStore, utc_now
from editorial.errors import ItemNotFoundError, StoreError, StoreWriteError
from editorial.stores.notion_blocks import (
    blocks_to_markdown,
    markdown_to_blocks,
    plain_text,
    rich_text,
)

logger = logging.getLogger(__name__)

NOTION_API_URL = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"
MAX_BLOCKS_PER_REQUEST = 100


class NotionAPIClient:
    """Thin wrapper around the Notion endpoints the store uses."""

    def __init__(
        self,
        api_key: str,
        *,
        api_url: str = NOTION_API_URL,
        notion_version: str = NOTION_VERSION,
        timeout: int = 30,
    ) -> None:
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.notion_version = notion_version
        self.timeout = timeout

    def _request(self, method: str, path: str, data: dict | None = None) -> dict:
        url = f"{self.api_url}{path}"
        body = json.dumps(data).encode("utf-8") if data is not None else None
        req = urllib.request.Request(
            url,
            data=body,
            method=method,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Notion-Version": self.notion_version,
                "Content-Type": "application/json",
            },
        )
        with urllib.request.urlopen(req, timeout=self.timeout) as resp:
            return json.loads(resp.read().decode("utf-8"))

    def query_database(self, database_id: str, filter_: dict | None = None) -> list[dict]:
        """Return every page matching ``filter_``, following pagination."""
        pages: list[dict] = []
        cursor: str | None = None
        while True:
            payload: dict[str, Any] = {"page_size": 100}
            if filter_:
                payload["filter"] = filter_
            if cursor:
                payload["start_cursor"] = cursor
            data = self._request("POST", f"/databases/{database_id}/query", payload)
            pages.extend(data.get("results", []))
            if not data.get("has_more"):
                return pages
            cursor = data.get("next_cursor")

    def retrieve_page(self, page_id: str) -> dict:
        return self._request("GET", f"/pages/{page_id}")

    def update_page(self, page_id: str, properties: dict) -> dict:
        return self._request("PATCH", f"/pages/{page_id}", {"properties": properties})

    def create_page(self, database_id: str, properties: dict) -> dict:
        return self._request(
            "POST",
            "/pages",
            {"parent": {"database_id": database_id}, "properties": properties},
        )

    def list_children(self, block_id: str) -> list[dict]:
        blocks: list[dict] = []
        cursor: str | None = None
        while True:
            path = f"/blocks/{block_id}/children?page_size=100"
            if cursor:
                path += f"&start_cursor={cursor}"
            data = self._request("GET", path)
            blocks.extend(data.get("results", []))
            if not data.get("has_more"):
                return blocks
            cursor = data.get("next_cursor")

    def append_children(self, block_id: str, children: list[dict]) -> dict:
        return self._request("PATCH", f"/blocks/{block_id}/children", {"children": children})

    def delete_block(self, block_id: str) -> dict:
        return self._request("DELETE", f"/blocks/{block_id}")


def _http_error(exc: urllib.error.HTTPError) -> str:
    try:
        detail = json.loads(exc.read().decode("utf-8")).get("message", "")
    except (ValueError, OSError, AttributeError):
        detail = ""
    return f"Notion API error {exc.code}: {detail or exc.reason}"


class NotionContentStore(ContentStore):
    """Content store backed by a Notion database.

    Args:
        client: Notion API client.
        database_id: Database holding the topics being processed.
        drafts_database_id: Database new items are created in. Falls back
            to ``database_id`` when unset.
        batch_size: Blocks per append request (Notion allows 100).
        batch_delay: Seconds to pause between append batches.
        sleep: Injectable sleep function, for tests.
    """

    def __init__(
        self,
        client: NotionAPIClient,
        *,
        database_id: str,
        drafts_database_id: str | None = None,
        status_property: str = "Status",
        status_property_type: str = "status",
        title_property: str = "Title",
        error_property: str = "Error",
        relation_property: str = "Blog Posts",
        last_modified_property: str = "Last Modified Date",
        batch_size: int = MAX_BLOCKS_PER_REQUEST,
        batch_delay: float = 0.3,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.database_id = database_id
        self.drafts_database_id = drafts_database_id or database_id
        self.status_property = status_property
        self.status_property_type = status_property_type
        self.title_property = title_property
        self.error_property = error_property
        self.relation_property = relation_property
        self.last_modified_property = last_modified_property
        self.batch_size = max(1, min(batch_size, MAX_BLOCKS_PER_REQUEST))
        self.batch_delay = batch_delay
        self._sleep = sleep

    # ── Property mapping ─────────────────────────────────────────

    def _status_value(self, status: ContentStatus) -> dict:
        return {self.status_property_type: {"name": status.value}}

    def _properties(self, item: ContentItem, *, parent_id: str | None = None) -> dict:
        props: dict[str, Any] = {
            self.title_property: {"title": rich_text(item.title)},
            self.status_property: self._status_value(item.status),
            self.error_property: {"rich_text": rich_text(item.error_message or "")},
            self.last_modified_property: {"date": {"start": utc_now().isoformat()}},
        }
        related = parent_id if parent_id is not None else item.related_id
        if related:
            props[self.relation_property] = {"relation": [{"id": related}]}
        return props

    def _item_from_page(self, page: dict, body: str) -> ContentItem:
        props = page.get("properties", {})
        status_prop = props.get(self.status_property, {})
        status_data = status_prop.get(status_prop.get("type", "status")) or {}
        raw_status = status_data.get("name")
        try:
            status = ContentStatus(str(raw_status))
        except ValueError as exc:
            raise StoreError(f"{page.get('id')}: unknown status {raw_status!r}") from exc

        title = plain_text(props.get(self.title_property, {}).get("title", []))
        error = plain_text(props.get(self.error_property, {}).get("rich_text", []))
        relation = props.get(self.relation_property, {}).get("relation") or []
        date = (props.get(self.last_modified_property, {}).get("date") or {}).get("start")
        date = date or page.get("last_edited_time")
        last_modified = None
        if date:
            try:
                last_modified = datetime.fromisoformat(date.replace("Z", "+00:00"))
            except ValueError:
                logger.debug("Unparseable date %r on page %s", date, page.get("id"))

        return ContentItem(
            id=page["id"],
            title=title,
            status=status,
            body=body,
            related_id=relation[0]["id"] if relation else None,
            error_message=(error or None) if status == ContentStatus.ERROR else None,
            last_modified=last_modified,
            metadata={"url": page["url"]} if page.get("url") else {},
        )

    # ── Body handling ────────────────────────────────────────────

    def _read_body(self, page_id: str) -> str:
        return blocks_to_markdown(self.client.list_children(page_id))

    def _append_blocks(self, page_id: str, blocks: list[dict]) -> None:
        total = len(blocks)
        logger.debug("Appending %d blocks in batches of %d", total, self.batch_size)
        for start in range(0, total, self.batch_size):
            end = min(start + self.batch_size, total)
            self.client.append_children(page_id, blocks[start:end])
            if end < total:
                self._sleep(self.batch_delay)

    def _replace_body(self, page_id: str, markdown: str, old_blocks: list[dict]) -> None:
        """Swap the page body for ``markdown`` without ever leaving it truncated.

        A body that only extends the current one gets just the new blocks
        appended. Anything else is appended in full before the old blocks
        are deleted, so a failed append leaves the old body in place.
        """
        current = blocks_to_markdown(old_blocks).strip()
        new = markdown.strip()
        if current and new.startswith(current + "\n\n"):
            self._append_blocks(page_id, markdown_to_blocks(new[len(current):]))
            return
        self._append_blocks(page_id, markdown_to_blocks(markdown))
        for block in old_blocks:
            self.client.delete_block(block["id"])

    # ── Read operations ──────────────────────────────────────────

    def query_by_status(self, status: ContentStatus) -> list[ContentItem]:
        filter_ = {
            "property": self.status_property,
            self.status_property_type: {"equals": status.value},
        }
        try:
            pages = self.client.query_database(self.database_id, filter_)
            items: list[ContentItem] = []
            for page in pages:
                try:
                    items.append(self._item_from_page(page, self._read_body(page["id"])))
                except StoreError as exc:
                    logger.warning("Skipping page %s: %s", page.get("id"), exc)
            return items
        except urllib.error.HTTPError as exc:
            raise StoreError(_http_error(exc), status_code=exc.code) from exc
        except urllib.error.URLError as exc:
            raise StoreError(f"Notion API unreachable: {exc.reason}") from exc

    def read(self, item_id: str) -> ContentItem:
        try:
            page = self.client.retrieve_page(item_id)
            return self._item_from_page(page, self._read_body(item_id))
        except urllib.error.HTTPError as exc:
            if exc.code in (400, 404):
                raise ItemNotFoundError(f"Item not found: {item_id}", status_code=exc.code) from exc
            raise StoreError(_http_error(exc), status_code=exc.code) from exc
        except urllib.error.URLError as exc:
            raise StoreError(f"Notion API unreachable: {exc.reason}") from exc

    # ── Write operations ─────────────────────────────────────────

    def write(self, item: ContentItem, *, message: str = "") -> ContentItem:
        try:
            old_blocks = self.client.list_children(item.id)
            if item.body.strip() != blocks_to_markdown(old_blocks).strip():
                self._replace_body(item.id, item.body, old_blocks)
            page = self.client.update_page(item.id, self._properties(item))
        except urllib.error.HTTPError as exc:
            if exc.code == 404:
                raise ItemNotFoundError(f"Item not found: {item.id}", status_code=404) from exc
            raise StoreWriteError(_http_error(exc), status_code=exc.code) from exc
        except urllib.error.URLError as exc:
            raise StoreWriteError(f"Notion API unreachable: {exc.reason}") from exc
        logger.info("Updated page %s to %r %s", item.id, item.status.value, message)
        persisted = self._item_from_page(page, item.body)
        return persisted.model_copy(update={"metadata": {**item.metadata, **persisted.metadata}})

    def create(
        self,
        item: ContentItem,
        *,
        parent_id: str | None = None,
        message: str = "",
    ) -> ContentItem:
        try:
            page = self.client.create_page(
                self.drafts_database_id, self._properties(item, parent_id=parent_id)
            )
            self._append_blocks(page["id"], markdown_to_blocks(item.body))
        except urllib.error.HTTPError as exc:
            raise StoreWriteError(_http_error(exc), status_code=exc.code) from exc
        except urllib.error.URLError as exc:
            raise StoreWriteError(f"Notion API unreachable: {exc.reason}") from exc
        logger.info("Created page %s in database %s %s", page["id"], self.drafts_database_id, message)
        created = self._item_from_page(page, item.body)
        return created.model_copy(update={"metadata": {**item.metadata, **created.metadata}})
