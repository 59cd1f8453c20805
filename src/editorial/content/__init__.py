"""Content domain: the ContentItem model, status vocabulary and stores.

The status field of a ContentItem doubles as the pipeline's work queue.
Stores abstract over where items live (a JSON file, markdown files with
frontmatter, a GitHub repository, or a Notion database).
"""

from editorial.content.models import (
    ContentItem,
    ContentStatus,
    DraftResult,
    ResearchResult,
)
from editorial.content.store import ContentStore, JsonContentStore
from editorial.content.transitions import (
    allowed_targets,
    check_transition,
    is_valid_transition,
)

__all__ = [
    "ContentItem",
    "ContentStatus",
    "ContentStore",
    "DraftResult",
    "JsonContentStore",
    "ResearchResult",
    "allowed_targets",
    "check_transition",
    "is_valid_transition",
]
