# models/request.py
import enum
import uuid
from sqlalchemy import (
    Column, String, TEXT, INT, TIMESTAMP, CHAR, ForeignKey, Enum, CheckConstraint
)
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.utils.clock import utcnow

class RequestStatusEnum(str, enum.Enum):
    open = "open"
    awarded = "awarded"
    completed = "completed"
    cancelled = "cancelled"

class Request(Base):
    """委託人刊登的開發需求"""
    __tablename__ = "requests"
    __table_args__ = (
        CheckConstraint("budget_min > 0 AND budget_max > 0", name="ck_requests_budget_positive"),
        CheckConstraint("budget_min <= budget_max", name="ck_requests_budget_range"),
    )

    request_id = Column(CHAR(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    client_id = Column(CHAR(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(TEXT, nullable=False)
    budget_min = Column(INT, nullable=False)
    budget_max = Column(INT, nullable=False)
    deadline = Column(TIMESTAMP, nullable=True)
    status = Column(
        Enum(RequestStatusEnum, values_callable=lambda obj: [e.value for e in obj], name="request_status_enum"),
        default=RequestStatusEnum.open,
        nullable=False,
        index=True,
    )

    # created_at 在應用程式端決定，expires_at = created_at + 投標期間 (建立後不可延長)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP, default=utcnow, onupdate=utcnow)
    expires_at = Column(TIMESTAMP, nullable=False)

    # 只由得標交易 (AwardService) 寫入；awarded/completed 時才有值
    # use_alter: requests <-> bids 互相參照
    awarded_bid_id = Column(
        CHAR(36),
        ForeignKey("bids.bid_id", use_alter=True, name="fk_requests_awarded_bid_id"),
        nullable=True,
    )
    awarded_at = Column(TIMESTAMP, nullable=True)

    client = relationship("User", back_populates="requests_owned")

    bids = relationship(
        "Bid",
        back_populates="request",
        foreign_keys="[Bid.request_id]",
        cascade="all, delete-orphan",
    )

    def has_expired(self, now=None) -> bool:
        """投標期間是否已結束 (不會自動改變 status，只在每次操作時比對)"""
        return (now or utcnow()) >= self.expires_at

    @property
    def is_expired(self) -> bool:
        return self.has_expired()
