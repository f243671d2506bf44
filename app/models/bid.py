# app/models/bid.py
import uuid
from sqlalchemy import (
    Column, TEXT, INT, BOOLEAN, TIMESTAMP, CHAR, ForeignKey, CheckConstraint, UniqueConstraint
)
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.utils.clock import utcnow

class Bid(Base):
    __tablename__ = "bids"
    __table_args__ = (
        # 一位開發者對同一需求只能有一筆投標 (由資料庫保證，不靠先查再寫)
        UniqueConstraint("request_id", "developer_id", name="uq_bids_request_developer"),
        CheckConstraint("price > 0", name="ck_bids_price_positive"),
        CheckConstraint("estimated_days IS NULL OR estimated_days > 0", name="ck_bids_estimated_days_positive"),
    )

    bid_id = Column(CHAR(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    request_id = Column(CHAR(36), ForeignKey("requests.request_id", ondelete="CASCADE"), nullable=False, index=True)
    developer_id = Column(CHAR(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)

    price = Column(INT, nullable=False)
    message = Column(TEXT)
    estimated_days = Column(INT)

    # 只能由得標交易設為 True；被選中後此投標不可再修改或撤回
    is_selected = Column(BOOLEAN, default=False, nullable=False)
    selected_at = Column(TIMESTAMP, nullable=True)

    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)
    updated_at = Column(TIMESTAMP, default=utcnow, onupdate=utcnow)

    # --- 建立關聯 (Relationships) ---
    request = relationship("Request", back_populates="bids", foreign_keys=[request_id])
    developer = relationship("User", back_populates="bids")
