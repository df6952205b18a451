"""
Tests for ReportService: one report per user and target, the review status
machine and the aggregate stats.
"""
import pytest

from wallnest.comments.schemas import CommentCreate
from wallnest.comments.service import CommentService
from wallnest.exceptions import ForbiddenException
from wallnest.reports.exceptions import (
    DuplicateReportException,
    InvalidStatusTransitionException,
    ReportClosedException,
    ReportTargetNotFoundException,
)
from wallnest.reports.models import ReportReason, ReportStatus, ReportTargetType
from wallnest.reports.schemas import ReportCreate, ReportFilters, ReportUpdate
from wallnest.reports.service import ReportService


def post_report(post_id, reason=ReportReason.SPAM):
    return ReportCreate(target_type=ReportTargetType.POST, target_id=post_id, reason=reason)


# ── filing reports ────────────────────────────────────────────────────────────

class TestCreate:
    async def test_new_report_is_pending(self, db, user, other_user, make_post):
        post = await make_post(user)
        report = await ReportService().create(post_report(post.id), other_user, db)
        assert report.status == ReportStatus.PENDING.value
        assert report.user.username == "bob"

    async def test_second_report_on_same_target_conflicts(self, db, user, other_user, make_post):
        post = await make_post(user)
        service = ReportService()
        await service.create(post_report(post.id), other_user, db)
        with pytest.raises(DuplicateReportException) as exc:
            await service.create(post_report(post.id, ReportReason.OTHER), other_user, db)
        assert exc.value.status_code == 409

    async def test_different_users_may_report_same_target(self, db, user, other_user, admin, make_user, make_post):
        post = await make_post(user)
        third = await make_user("carol")
        service = ReportService()
        await service.create(post_report(post.id), other_user, db)
        await service.create(post_report(post.id), third, db)
        _, total = await service.list_reports(ReportFilters(), admin, db)
        assert total == 2

    async def test_comment_target(self, db, user, other_user, make_post):
        post = await make_post(user)
        comment = await CommentService().create(CommentCreate(content="rude", post_id=post.id), user, db)
        report = await ReportService().create(
            ReportCreate(target_type="comment", target_id=comment.id, reason="harassment"), other_user, db
        )
        assert report.target_type == "comment"

    async def test_missing_target(self, db, other_user):
        with pytest.raises(ReportTargetNotFoundException):
            await ReportService().create(post_report(404), other_user, db)

    async def test_can_report(self, db, user, other_user, make_post):
        post = await make_post(user)
        service = ReportService()
        assert (await service.check_can_report(other_user.id, ReportTargetType.POST, post.id, db)).can_report
        await service.create(post_report(post.id), other_user, db)
        answer = await service.check_can_report(other_user.id, ReportTargetType.POST, post.id, db)
        assert not answer.can_report
        assert answer.reason


# ── reviewing ─────────────────────────────────────────────────────────────────

class TestReview:
    async def _report(self, db, user, other_user, make_post):
        post = await make_post(user)
        return await ReportService().create(post_report(post.id), other_user, db)

    async def test_note_without_status_resolves(self, db, user, other_user, admin, make_post):
        report = await self._report(db, user, other_user, make_post)
        reviewed = await ReportService().update_status(report.id, ReportUpdate(review_note="Removed"), admin, db)
        assert reviewed.status == ReportStatus.RESOLVED.value
        assert reviewed.reviewed_by == admin.id
        assert reviewed.review_note == "Removed"

    async def test_empty_update_marks_reviewing(self, db, user, other_user, admin, make_post):
        report = await self._report(db, user, other_user, make_post)
        reviewed = await ReportService().update_status(report.id, ReportUpdate(), admin, db)
        assert reviewed.status == ReportStatus.REVIEWING.value

    async def test_closed_report_cannot_change(self, db, user, other_user, admin, make_post):
        report = await self._report(db, user, other_user, make_post)
        service = ReportService()
        await service.update_status(report.id, ReportUpdate(status=ReportStatus.DISMISSED), admin, db)
        with pytest.raises(ReportClosedException):
            await service.update_status(report.id, ReportUpdate(status=ReportStatus.REVIEWING), admin, db)

    async def test_reviewing_can_move_on(self, db, user, other_user, admin, make_post):
        report = await self._report(db, user, other_user, make_post)
        service = ReportService()
        await service.update_status(report.id, ReportUpdate(status=ReportStatus.REVIEWING), admin, db)
        done = await service.update_status(report.id, ReportUpdate(status=ReportStatus.RESOLVED), admin, db)
        assert done.status == ReportStatus.RESOLVED.value

    async def test_reviewing_cannot_go_back_to_pending(self, db, user, other_user, admin, make_post):
        report = await self._report(db, user, other_user, make_post)
        service = ReportService()
        await service.update_status(report.id, ReportUpdate(status=ReportStatus.REVIEWING), admin, db)
        with pytest.raises(InvalidStatusTransitionException) as exc:
            await service.update_status(report.id, ReportUpdate(status=ReportStatus.PENDING), admin, db)
        assert exc.value.status_code == 400
        assert (await service.get_report(report.id, db)).status == ReportStatus.REVIEWING.value

    async def test_pending_cannot_be_set_again(self, db, user, other_user, admin, make_post):
        report = await self._report(db, user, other_user, make_post)
        with pytest.raises(InvalidStatusTransitionException):
            await ReportService().update_status(report.id, ReportUpdate(status=ReportStatus.PENDING), admin, db)

    async def test_regular_user_cannot_review(self, db, user, other_user, make_post):
        report = await self._report(db, user, other_user, make_post)
        with pytest.raises(ForbiddenException):
            await ReportService().update_status(report.id, ReportUpdate(), other_user, db)


# ── stats ─────────────────────────────────────────────────────────────────────

class TestStats:
    async def test_counts_by_status_reason_and_type(self, db, user, other_user, admin, make_post):
        service = ReportService()
        first = await make_post(user, title="First")
        second = await make_post(user, title="Second")
        a = await service.create(post_report(first.id), other_user, db)
        await service.create(post_report(second.id, ReportReason.COPYRIGHT), other_user, db)
        await service.update_status(a.id, ReportUpdate(status=ReportStatus.RESOLVED), admin, db)

        stats = await service.get_stats(admin, db)
        assert stats.total == 2
        assert stats.pending == 1
        assert stats.resolved == 1
        assert stats.reviewing == 0
        assert stats.by_reason == {"spam": 1, "copyright": 1}
        assert stats.by_target_type == {"post": 2}

    async def test_reasons_are_listed(self):
        reasons = ReportService().get_reasons()
        assert {r.value for r in reasons} == set(ReportReason)
