# app/models/report.py

import enum
import uuid
from sqlalchemy import (
    Column, String, TEXT, TIMESTAMP, CHAR, ForeignKey, Enum, UniqueConstraint
)
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.utils.clock import utcnow

class ReportTargetTypeEnum(str, enum.Enum):
    user = "user"
    request = "request"
    message = "message"
    review = "review"

class ReportStatusEnum(str, enum.Enum):
    pending = "pending"
    resolved = "resolved"
    dismissed = "dismissed"

class Report(Base):
    __tablename__ = "reports"
    __table_args__ = (
        # 同一人對同一對象只能檢舉一次
        UniqueConstraint("reporter_id", "target_type", "target_id", name="uq_reports_reporter_target"),
    )

    report_id = Column(CHAR(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    reporter_id = Column(CHAR(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)

    # target_id 依 target_type 指向不同資料表，因此不設外鍵
    target_type = Column(
        Enum(ReportTargetTypeEnum, values_callable=lambda obj: [e.value for e in obj], name="report_target_type_enum"),
        nullable=False,
    )
    target_id = Column(CHAR(36), nullable=False)

    reason = Column(String(100), nullable=False)
    description = Column(TEXT)
    status = Column(
        Enum(ReportStatusEnum, values_callable=lambda obj: [e.value for e in obj], name="report_status_enum"),
        default=ReportStatusEnum.pending,
        nullable=False,
        index=True,
    )

    resolved_by = Column(CHAR(36), ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    resolved_at = Column(TIMESTAMP, nullable=True)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)

    reporter = relationship("User", foreign_keys=[reporter_id])
