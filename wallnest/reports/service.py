"""
Service layer for Reports module.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wallnest.comments.models import Comment
from wallnest.pagination import get_offset
from wallnest.permissions import Action, ensure_allowed
from wallnest.posts.models import Post
from wallnest.reports.constants import ALREADY_REPORTED, REASON_OPTIONS
from wallnest.reports.exceptions import (
    DuplicateReportException,
    InvalidStatusTransitionException,
    ReportClosedException,
    ReportNotFoundException,
    ReportTargetNotFoundException,
)
from wallnest.reports.models import ALLOWED_TRANSITIONS, TERMINAL_STATUSES, Report, ReportReason, ReportStatus, ReportTargetType
from wallnest.reports.schemas import CanReportResponse, ReasonOption, ReportCreate, ReportFilters, ReportStats, ReportUpdate
from wallnest.users.models import User

logger = logging.getLogger(__name__)

_TARGET_MODELS = {
    ReportTargetType.POST.value: Post,
    ReportTargetType.COMMENT.value: Comment,
}


def _with_people(query):
    return query.options(
        selectinload(Report.user),
        selectinload(Report.reviewer),
    ).execution_options(populate_existing=True)


class ReportService:
    async def _find_existing(self, user_id: int, target_type: str, target_id: int, db: AsyncSession) -> Optional[int]:
        result = await db.execute(
            select(Report.id).where(
                Report.user_id == user_id,
                Report.target_type == target_type,
                Report.target_id == target_id,
            )
        )
        return result.scalar_one_or_none()

    async def create(self, data: ReportCreate, current_user: User, db: AsyncSession) -> Report:
        """
        File a report against a post or a comment.

        Raises:
            ReportTargetNotFoundException: the reported post/comment does not exist
            DuplicateReportException: this user already reported the target
        """
        target_type = ReportTargetType(data.target_type).value
        model = _TARGET_MODELS[target_type]
        exists = await db.execute(select(model.id).where(model.id == data.target_id))
        if exists.scalar_one_or_none() is None:
            raise ReportTargetNotFoundException()

        if await self._find_existing(current_user.id, target_type, data.target_id, db) is not None:
            raise DuplicateReportException()

        report = Report(
            user_id=current_user.id,
            target_type=target_type,
            target_id=data.target_id,
            reason=ReportReason(data.reason).value,
            description=data.description,
        )
        try:
            db.add(report)
            await db.commit()
        except IntegrityError:
            # Lost the race against an identical report
            await db.rollback()
            raise DuplicateReportException()
        except Exception:
            await db.rollback()
            raise
        logger.info("User %s reported %s %s (%s)", current_user.id, target_type, data.target_id, report.reason)
        return await self.get_report(report.id, db)

    async def get_report(self, report_id: int, db: AsyncSession) -> Report:
        result = await db.execute(_with_people(select(Report).where(Report.id == report_id)))
        report = result.scalar_one_or_none()
        if not report:
            raise ReportNotFoundException()
        return report

    async def update_status(self, report_id: int, data: ReportUpdate, current_user: User, db: AsyncSession) -> Report:
        """
        Review a report.

        Without an explicit status a review note resolves the report and no
        note moves it to reviewing. Every update records the reviewer.

        Raises:
            ReportNotFoundException: unknown report
            ReportClosedException: the report is already resolved or dismissed
            InvalidStatusTransitionException: the requested status would move the report backwards
        """
        ensure_allowed(current_user, Action.REPORT_REVIEW)
        report = await self.get_report(report_id, db)
        if report.status in TERMINAL_STATUSES:
            raise ReportClosedException()

        if data.status is not None:
            new_status = ReportStatus(data.status)
        elif data.review_note:
            new_status = ReportStatus.RESOLVED
        else:
            new_status = ReportStatus.REVIEWING
        if new_status not in ALLOWED_TRANSITIONS[report.status]:
            raise InvalidStatusTransitionException(report.status, new_status.value)

        try:
            report.status = new_status.value
            report.reviewed_by = current_user.id
            if data.review_note is not None:
                report.review_note = data.review_note
            report.updated_at = func.now()
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Report %s set to %s by admin %s", report_id, new_status.value, current_user.id)
        return await self.get_report(report_id, db)

    async def list_reports(
        self,
        filters: ReportFilters,
        current_user: User,
        db: AsyncSession,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Report], int]:
        ensure_allowed(current_user, Action.REPORT_REVIEW)
        conditions = []
        if filters.target_type is not None:
            conditions.append(Report.target_type == ReportTargetType(filters.target_type).value)
        if filters.reason is not None:
            conditions.append(Report.reason == ReportReason(filters.reason).value)
        if filters.status is not None:
            conditions.append(Report.status == ReportStatus(filters.status).value)
        if filters.user_id is not None:
            conditions.append(Report.user_id == filters.user_id)

        total = (await db.execute(select(func.count(Report.id)).where(*conditions))).scalar_one()
        result = await db.execute(_with_people(
            select(Report)
            .where(*conditions)
            .order_by(desc(Report.created_at), desc(Report.id))
            .offset(get_offset(page, limit))
            .limit(limit)
        ))
        return list(result.scalars().all()), total

    async def get_user_reports(self, user_id: int, db: AsyncSession, page: int = 1, limit: int = 20) -> Tuple[List[Report], int]:
        total = (await db.execute(
            select(func.count(Report.id)).where(Report.user_id == user_id)
        )).scalar_one()
        result = await db.execute(_with_people(
            select(Report)
            .where(Report.user_id == user_id)
            .order_by(desc(Report.created_at), desc(Report.id))
            .offset(get_offset(page, limit))
            .limit(limit)
        ))
        return list(result.scalars().all()), total

    async def can_report(self, user_id: int, target_type: ReportTargetType, target_id: int, db: AsyncSession) -> bool:
        existing = await self._find_existing(user_id, ReportTargetType(target_type).value, target_id, db)
        return existing is None

    async def check_can_report(self, user_id: int, target_type: ReportTargetType, target_id: int, db: AsyncSession) -> CanReportResponse:
        allowed = await self.can_report(user_id, target_type, target_id, db)
        return CanReportResponse(can_report=allowed, reason=None if allowed else ALREADY_REPORTED)

    def get_reasons(self) -> List[ReasonOption]:
        return [
            ReasonOption(value=ReportReason(value), label=label, description=description)
            for value, label, description in REASON_OPTIONS
        ]

    async def _group_counts(self, column, db: AsyncSession) -> dict:
        result = await db.execute(select(column, func.count(Report.id)).group_by(column))
        return {key: count for key, count in result.all()}

    async def get_stats(self, current_user: User, db: AsyncSession) -> ReportStats:
        """Totals per status plus counts grouped by reason and by target type."""
        ensure_allowed(current_user, Action.REPORT_REVIEW)
        by_status = await self._group_counts(Report.status, db)
        return ReportStats(
            total=sum(by_status.values()),
            pending=by_status.get(ReportStatus.PENDING.value, 0),
            reviewing=by_status.get(ReportStatus.REVIEWING.value, 0),
            resolved=by_status.get(ReportStatus.RESOLVED.value, 0),
            dismissed=by_status.get(ReportStatus.DISMISSED.value, 0),
            by_reason=await self._group_counts(Report.reason, db),
            by_target_type=await self._group_counts(Report.target_type, db),
        )
