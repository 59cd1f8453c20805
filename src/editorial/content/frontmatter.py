"""YAML frontmatter (de)serialization for file-backed content items.

A content file looks like::

    ---
    title: Getting Things Done
    status: Ready for Research
    related_id: topics/gtd.md
    ---
    body markdown...

Keys the model knows about map onto ContentItem fields; every other key
is kept in ``ContentItem.metadata`` and written back untouched.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any

import yaml

from editorial.content.models import ContentItem, ContentStatus
from editorial.errors import StoreError

logger = logging.getLogger(__name__)

_FRONTMATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)

_FIELD_KEYS = ("title", "status", "related_id", "error_message", "last_modified")


def split_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Split a markdown document into its frontmatter dict and body.

    Documents without frontmatter return an empty dict and the full text.

    Raises:
        StoreError: If the frontmatter block is not a YAML mapping.
    """
    match = _FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    try:
        data = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as exc:
        raise StoreError(f"Invalid YAML frontmatter: {exc}") from exc
    if not isinstance(data, dict):
        raise StoreError("Frontmatter is not a mapping")
    body = text[match.end():]
    return data, body.lstrip("\n")


def render_document(frontmatter: dict[str, Any], body: str) -> str:
    """Render frontmatter and body back into a markdown document."""
    dumped = yaml.safe_dump(
        frontmatter,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=10_000,
    ).strip()
    return f"---\n{dumped}\n---\n\n{body}"


def item_from_document(item_id: str, text: str) -> ContentItem:
    """Build a ContentItem from a markdown document's text.

    A missing or unknown status raises StoreError, since an item without
    a recognised status can never be selected or transitioned safely.
    """
    data, body = split_frontmatter(text)
    raw_status = data.get("status")
    try:
        status = ContentStatus(str(raw_status))
    except ValueError as exc:
        raise StoreError(f"{item_id}: unknown status {raw_status!r}") from exc

    last_modified = data.get("last_modified")
    if isinstance(last_modified, str):
        try:
            last_modified = datetime.fromisoformat(last_modified)
        except ValueError:
            logger.debug("%s: unparseable last_modified %r", item_id, last_modified)
            last_modified = None
    elif not isinstance(last_modified, datetime):
        last_modified = None

    related = data.get("related_id")
    error_message = data.get("error_message")
    return ContentItem(
        id=item_id,
        title=str(data.get("title") or ""),
        status=status,
        body=body,
        related_id=str(related) if related else None,
        error_message=str(error_message) if error_message else None,
        last_modified=last_modified,
        metadata={k: v for k, v in data.items() if k not in _FIELD_KEYS},
    )


def document_from_item(item: ContentItem) -> str:
    """Render a ContentItem as a markdown document with frontmatter."""
    fm: dict[str, Any] = {"title": item.title, "status": item.status.value}
    if item.related_id:
        fm["related_id"] = item.related_id
    if item.error_message:
        fm["error_message"] = item.error_message
    if item.last_modified is not None:
        fm["last_modified"] = item.last_modified.isoformat()
    for key, value in item.metadata.items():
        if key not in _FIELD_KEYS:
            fm[key] = value
    return render_document(fm, item.body)
