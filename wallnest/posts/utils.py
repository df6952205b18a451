import re
from typing import Iterable, List, Optional

from wallnest.posts.constants import MAX_TAGS, SUMMARY_LENGTH
from wallnest.utils.text import join_csv, split_csv


def sanitize_title(title: str) -> str:
    """
    Sanitize post title by removing extra whitespace
    """
    return re.sub(r'\s+', ' ', title.strip())


def sanitize_content(content: str) -> str:
    """
    Sanitize post content by collapsing runs of blank lines
    """
    return re.sub(r'\n\s*\n', '\n\n', content.strip())


def truncate_content(content: str, max_length: int = SUMMARY_LENGTH) -> str:
    """
    Truncate content to specified length
    """
    if len(content) <= max_length:
        return content

    truncated = content[:max_length]
    # Try to break at a word boundary
    last_space = truncated.rfind(' ')
    if last_space > max_length * 0.8:
        truncated = truncated[:last_space]

    return truncated + "..."


def normalize_post_tags(tags: Optional[Iterable[str]]) -> Optional[str]:
    """Encode tag names as the CSV string stored on the post (commas are separators)."""
    if tags is None:
        return None
    names: List[str] = []
    for tag in tags:
        for name in split_csv(tag):
            if name not in names:
                names.append(name)
    return join_csv(names[:MAX_TAGS])
