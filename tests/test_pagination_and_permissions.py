"""
Tests for pagination arithmetic and the authorization rules.
"""
from types import SimpleNamespace

import pytest

from wallnest.exceptions import ForbiddenException, UnauthorizedException
from wallnest.pagination import build_pagination, get_offset, page_count
from wallnest.permissions import Action, authorize, ensure_allowed
from wallnest.users.models import UserRole

USER = SimpleNamespace(id=1, role=UserRole.USER)
OTHER = SimpleNamespace(id=2, role=UserRole.USER)
ADMIN = SimpleNamespace(id=9, role=UserRole.ADMIN)


# ── pagination ────────────────────────────────────────────────────────────────

class TestPagination:
    def test_empty_result_has_one_page(self):
        assert page_count(0, 20) == 1

    def test_partial_last_page_counts(self):
        assert page_count(41, 20) == 3

    def test_exact_multiple(self):
        assert page_count(40, 20) == 2

    def test_offset(self):
        assert get_offset(3, 20) == 40

    def test_offset_clamps_page_below_one(self):
        assert get_offset(0, 20) == 0

    def test_meta_navigation(self):
        meta = build_pagination(page=2, limit=10, total=25)
        assert meta.pages == 3
        assert meta.has_next and meta.has_prev


# ── ownership rules ───────────────────────────────────────────────────────────

class TestOwnership:
    def test_uploader_may_edit_own_wallpaper(self):
        assert authorize(USER, Action.WALLPAPER_UPDATE, SimpleNamespace(uploader_id=1))

    def test_stranger_may_not_edit_wallpaper(self):
        assert not authorize(OTHER, Action.WALLPAPER_UPDATE, SimpleNamespace(uploader_id=1))

    def test_admin_may_delete_any_wallpaper(self):
        assert authorize(ADMIN, Action.WALLPAPER_DELETE, SimpleNamespace(uploader_id=1))

    def test_admin_may_not_edit_someone_elses_post(self):
        assert not authorize(ADMIN, Action.POST_UPDATE, SimpleNamespace(author_id=1))

    def test_author_may_delete_own_comment(self):
        assert authorize(USER, Action.COMMENT_DELETE, SimpleNamespace(author_id=1))

    def test_missing_resource_is_denied(self):
        assert not authorize(USER, Action.POST_DELETE, None)


# ── role rules ────────────────────────────────────────────────────────────────

class TestAdminOnly:
    @pytest.mark.parametrize("action", [
        Action.REPORT_REVIEW, Action.TAG_MANAGE, Action.USER_MANAGE, Action.DASHBOARD_VIEW,
    ])
    def test_admin_allowed(self, action):
        assert authorize(ADMIN, action)

    @pytest.mark.parametrize("action", [
        Action.REPORT_REVIEW, Action.TAG_MANAGE, Action.USER_MANAGE, Action.DASHBOARD_VIEW,
    ])
    def test_user_denied(self, action):
        assert not authorize(USER, action)

    def test_role_given_as_plain_string(self):
        assert authorize(SimpleNamespace(id=3, role="admin"), Action.TAG_MANAGE)


# ── ensure_allowed ────────────────────────────────────────────────────────────

class TestEnsureAllowed:
    def test_anonymous_is_unauthorized(self):
        with pytest.raises(UnauthorizedException):
            ensure_allowed(None, Action.POST_UPDATE, SimpleNamespace(author_id=1))

    def test_denied_is_forbidden_with_message(self):
        with pytest.raises(ForbiddenException) as exc:
            ensure_allowed(OTHER, Action.POST_UPDATE, SimpleNamespace(author_id=1), "Only the author can edit")
        assert exc.value.detail == "Only the author can edit"

    def test_allowed_returns_none(self):
        assert ensure_allowed(USER, Action.POST_UPDATE, SimpleNamespace(author_id=1)) is None
