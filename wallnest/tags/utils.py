import re
from typing import Iterable, List

from wallnest.tags.constants import MAX_TAG_LENGTH, MIN_TAG_LENGTH
from wallnest.tags.exceptions import InvalidTagNameException

WHITESPACE_RE = re.compile(r"\s+")


def normalize_tag_name(name: str) -> str:
    """
    Trim a tag name and check its length.

    Raises:
        InvalidTagNameException: if the trimmed name is not 1-50 characters
    """
    if name is None:
        raise InvalidTagNameException()
    trimmed = name.strip()
    if not (MIN_TAG_LENGTH <= len(trimmed) <= MAX_TAG_LENGTH):
        raise InvalidTagNameException()
    return trimmed


def make_slug(name: str) -> str:
    """Lower-case, trimmed, whitespace runs replaced by a single hyphen."""
    return WHITESPACE_RE.sub("-", name.strip().lower())


def dedupe_tag_names(names: Iterable[str]) -> List[str]:
    """
    Validate and de-duplicate tag names by slug, keeping first occurrences.

    "Ocean", " ocean " and "OCEAN" collapse into the first spelling seen.
    """
    seen = set()
    result = []
    for raw in names:
        name = normalize_tag_name(raw)
        slug = make_slug(name)
        if slug in seen:
            continue
        seen.add(slug)
        result.append(name)
    return result
