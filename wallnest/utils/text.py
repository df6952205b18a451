import re
from typing import Iterable, List, Optional

LIKE_ESCAPE = "\\"


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so `term` matches literally."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def contains_pattern(term: str) -> str:
    """Build a `%term%` LIKE pattern with wildcards in `term` escaped."""
    return f"%{escape_like(term)}%"


def collapse_whitespace(value: str) -> str:
    return re.sub(r"\s+", " ", value.strip())


def split_csv(value: Optional[str]) -> List[str]:
    """Split a comma separated string into trimmed, non-empty items."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def join_csv(items: Iterable[str]) -> Optional[str]:
    """Join items into a comma separated string, dropping blanks and duplicates."""
    seen = []
    for item in items:
        item = item.strip()
        if item and item not in seen:
            seen.append(item)
    return ",".join(seen) if seen else None
