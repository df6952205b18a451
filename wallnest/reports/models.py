import enum

from sqlalchemy import Column, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from wallnest.database import Base
from wallnest.orm_mixins import TimestampMixin


class ReportTargetType(str, enum.Enum):
    POST = "post"
    COMMENT = "comment"


class ReportReason(str, enum.Enum):
    SPAM = "spam"
    INAPPROPRIATE = "inappropriate"
    HARASSMENT = "harassment"
    VIOLENCE = "violence"
    COPYRIGHT = "copyright"
    MISINFORMATION = "misinformation"
    OTHER = "other"


class ReportStatus(str, enum.Enum):
    PENDING = "pending"
    REVIEWING = "reviewing"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


# No further review once a report reaches one of these
TERMINAL_STATUSES = (ReportStatus.RESOLVED.value, ReportStatus.DISMISSED.value)

# Status only moves forward; re-marking a report as reviewing is allowed
ALLOWED_TRANSITIONS = {
    ReportStatus.PENDING.value: {ReportStatus.REVIEWING, ReportStatus.RESOLVED, ReportStatus.DISMISSED},
    ReportStatus.REVIEWING.value: {ReportStatus.REVIEWING, ReportStatus.RESOLVED, ReportStatus.DISMISSED},
}


class Report(Base, TimestampMixin):
    __tablename__ = "reports"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Polymorphic target: no foreign key on target_id
    target_type = Column(String(20), nullable=False)
    target_id = Column(Integer, nullable=False)
    reason = Column(String(30), nullable=False, index=True)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=ReportStatus.PENDING.value, index=True)
    reviewed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    review_note = Column(Text, nullable=True)

    user = relationship("User", foreign_keys=[user_id])
    reviewer = relationship("User", foreign_keys=[reviewed_by])

    __table_args__ = (
        UniqueConstraint("user_id", "target_type", "target_id", name="uq_reports_user_target"),
    )
