"""Minimal markdown <-> Notion block conversion.

Only the block types the pipeline produces are handled: headings,
bulleted and numbered list items, quotes, fenced code and paragraphs.
Inline markdown links are flattened to their text because Notion rejects
some URLs that research providers cite.
"""

from __future__ import annotations

import re
from typing import Any

RICH_TEXT_LIMIT = 2000

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*)$")
_BULLET_RE = re.compile(r"^\s*[-*+]\s+(.*)$")
_NUMBERED_RE = re.compile(r"^\s*\d+[.)]\s+(.*)$")
_QUOTE_RE = re.compile(r"^>\s?(.*)$")
_FENCE_RE = re.compile(r"^```\s*([\w+-]*)\s*$")
_LINK_RE = re.compile(r"\[([^\]]*)\]\([^)]*\)")

_NOTION_LANGUAGES = {
    "bash", "c", "c++", "css", "go", "html", "java", "javascript", "json",
    "markdown", "python", "ruby", "rust", "shell", "sql", "typescript", "yaml",
}


def strip_links(text: str) -> str:
    """Replace ``[label](url)`` with ``label``."""
    return _LINK_RE.sub(r"\1", text)


def rich_text(text: str) -> list[dict[str, Any]]:
    """Split ``text`` into plain rich-text objects of at most 2000 chars."""
    if not text:
        return []
    return [
        {"type": "text", "text": {"content": text[i:i + RICH_TEXT_LIMIT]}}
        for i in range(0, len(text), RICH_TEXT_LIMIT)
    ]


def _block(block_type: str, text: str, **extra: Any) -> dict[str, Any]:
    return {
        "object": "block",
        "type": block_type,
        block_type: {"rich_text": rich_text(text), **extra},
    }


def markdown_to_blocks(markdown: str) -> list[dict[str, Any]]:
    """Convert markdown to a flat list of Notion block objects."""
    blocks: list[dict[str, Any]] = []
    paragraph: list[str] = []
    code: list[str] | None = None
    language = "plain text"

    def flush_paragraph() -> None:
        if paragraph:
            blocks.append(_block("paragraph", strip_links(" ".join(paragraph))))
            paragraph.clear()

    for line in markdown.splitlines():
        if code is not None:
            if _FENCE_RE.match(line.strip()):
                blocks.append(_block("code", "\n".join(code), language=language))
                code = None
            else:
                code.append(line)
            continue

        stripped = line.strip()
        fence = _FENCE_RE.match(stripped)
        if fence:
            flush_paragraph()
            lang = fence.group(1).lower()
            language = lang if lang in _NOTION_LANGUAGES else "plain text"
            code = []
            continue
        if not stripped:
            flush_paragraph()
            continue

        if m := _HEADING_RE.match(stripped):
            flush_paragraph()
            level = min(len(m.group(1)), 3)
            blocks.append(_block(f"heading_{level}", strip_links(m.group(2).strip())))
        elif m := _BULLET_RE.match(line):
            flush_paragraph()
            blocks.append(_block("bulleted_list_item", strip_links(m.group(1))))
        elif m := _NUMBERED_RE.match(line):
            flush_paragraph()
            blocks.append(_block("numbered_list_item", strip_links(m.group(1))))
        elif m := _QUOTE_RE.match(stripped):
            flush_paragraph()
            blocks.append(_block("quote", strip_links(m.group(1))))
        else:
            paragraph.append(stripped)

    if code is not None:
        # Unterminated fence: keep what we have.
        blocks.append(_block("code", "\n".join(code), language=language))
    flush_paragraph()
    return blocks


def plain_text(rich: list[dict[str, Any]]) -> str:
    return "".join(
        part.get("plain_text") or part.get("text", {}).get("content", "") for part in rich
    )


def blocks_to_markdown(blocks: list[dict[str, Any]]) -> str:
    """Render Notion blocks back to markdown.

    Unsupported block types are skipped.
    """
    lines: list[str] = []
    number = 0
    for block in blocks:
        block_type = block.get("type", "")
        data = block.get(block_type, {}) or {}
        text = plain_text(data.get("rich_text", []))

        if block_type != "numbered_list_item":
            number = 0
        if block_type.startswith("heading_"):
            level = int(block_type.rsplit("_", 1)[1])
            lines.extend([f"{'#' * level} {text}", ""])
        elif block_type == "paragraph":
            lines.extend([text, ""])
        elif block_type == "bulleted_list_item":
            lines.append(f"- {text}")
        elif block_type == "numbered_list_item":
            number += 1
            lines.append(f"{number}. {text}")
        elif block_type == "quote":
            lines.extend([f"> {text}", ""])
        elif block_type == "code":
            language = data.get("language", "")
            fence_lang = "" if language == "plain text" else language
            lines.extend([f"```{fence_lang}", text, "```", ""])

    return "\n".join(lines).strip() + "\n" if lines else ""
