"""
Tests for the pure string helpers: tag name normalisation, slugs, CSV tag
lists and LIKE escaping. No database involved.
"""
import pytest

from wallnest.posts.utils import normalize_post_tags, sanitize_content, sanitize_title, truncate_content
from wallnest.tags.exceptions import InvalidTagNameException
from wallnest.tags.utils import dedupe_tag_names, make_slug, normalize_tag_name
from wallnest.utils.text import contains_pattern, escape_like, join_csv, split_csv


# ── normalize_tag_name ────────────────────────────────────────────────────────

class TestNormalizeTagName:
    def test_trims(self):
        assert normalize_tag_name("  Ocean ") == "Ocean"

    def test_keeps_inner_spacing_and_case(self):
        assert normalize_tag_name("Night  Sky") == "Night  Sky"

    def test_blank_is_rejected(self):
        with pytest.raises(InvalidTagNameException):
            normalize_tag_name("   ")

    def test_fifty_characters_is_allowed(self):
        assert normalize_tag_name("x" * 50) == "x" * 50

    def test_fifty_one_characters_is_rejected(self):
        with pytest.raises(InvalidTagNameException):
            normalize_tag_name("x" * 51)

    def test_none_is_rejected(self):
        with pytest.raises(InvalidTagNameException):
            normalize_tag_name(None)


# ── make_slug ─────────────────────────────────────────────────────────────────

class TestMakeSlug:
    def test_lower_cases(self):
        assert make_slug("Ocean") == "ocean"

    def test_whitespace_runs_become_one_hyphen(self):
        assert make_slug("  Night \t Sky ") == "night-sky"

    def test_existing_hyphens_are_kept(self):
        assert make_slug("sci-fi") == "sci-fi"


# ── dedupe_tag_names ──────────────────────────────────────────────────────────

class TestDedupeTagNames:
    def test_first_spelling_wins(self):
        assert dedupe_tag_names(["Ocean", " ocean ", "OCEAN", "Beach"]) == ["Ocean", "Beach"]

    def test_invalid_name_fails_the_whole_list(self):
        with pytest.raises(InvalidTagNameException):
            dedupe_tag_names(["ok", ""])


# ── CSV helpers ───────────────────────────────────────────────────────────────

class TestCsv:
    def test_split_trims_and_drops_blanks(self):
        assert split_csv(" a, b ,,c ") == ["a", "b", "c"]

    def test_split_of_none_is_empty(self):
        assert split_csv(None) == []

    def test_join_drops_duplicates(self):
        assert join_csv(["a", " a", "b"]) == "a,b"

    def test_join_of_nothing_is_none(self):
        assert join_csv(["", "  "]) is None

    def test_post_tags_split_embedded_commas(self):
        assert normalize_post_tags(["python, fastapi", "python"]) == "python,fastapi"

    def test_post_tags_none_stays_none(self):
        assert normalize_post_tags(None) is None


# ── LIKE escaping ─────────────────────────────────────────────────────────────

class TestEscapeLike:
    def test_wildcards_are_escaped(self):
        assert escape_like("50%_off") == "50\\%\\_off"

    def test_contains_pattern_wraps(self):
        assert contains_pattern("sky") == "%sky%"


# ── post text clean-up ────────────────────────────────────────────────────────

class TestPostText:
    def test_title_whitespace_collapses(self):
        assert sanitize_title("  Hello   world ") == "Hello world"

    def test_blank_line_runs_collapse(self):
        assert sanitize_content("a\n\n\n\nb") == "a\n\nb"

    def test_short_content_is_not_truncated(self):
        assert truncate_content("short", 10) == "short"

    def test_long_content_breaks_at_a_word(self):
        assert truncate_content("alpha beta gamma delta", 18) == "alpha beta gamma..."
