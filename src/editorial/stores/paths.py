"""Path conventions shared by the file-backed stores."""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Callable

from editorial.content.models import ContentItem, ContentStatus

_NON_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(title: str) -> str:
    """Lowercase ASCII slug for a title, ``untitled`` when nothing survives."""
    normalized = unicodedata.normalize("NFKD", title).encode("ascii", "ignore").decode("ascii")
    slug = _NON_SLUG_RE.sub("-", normalized.lower()).strip("-")
    return slug or "untitled"


def new_item_path(item: ContentItem, *, research_dir: str, drafts_dir: str) -> str:
    """Repo-relative path for a newly created item.

    Draft artifacts (Ready for Review) go under ``drafts_dir`` with a
    ``-draft`` suffix; everything else goes under ``research_dir``.
    """
    slug = slugify(item.title)
    if item.status == ContentStatus.READY_FOR_REVIEW:
        return f"{drafts_dir.strip('/')}/{slug}-draft.md"
    return f"{research_dir.strip('/')}/{slug}.md"


def unique_path(path: str, exists: Callable[[str], bool]) -> str:
    """Append ``-2``, ``-3``... before ``.md`` until ``exists`` is false."""
    if not exists(path):
        return path
    stem = path.removesuffix(".md")
    n = 2
    while exists(f"{stem}-{n}.md"):
        n += 1
    return f"{stem}-{n}.md"
