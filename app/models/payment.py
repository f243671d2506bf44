# app/models/payment.py

import enum
import uuid
from sqlalchemy import (
    Column, String, INT, TIMESTAMP, CHAR, ForeignKey, Enum, CheckConstraint, func
)
from sqlalchemy.orm import relationship
from app.core.database import Base

# 託管付款狀態: pending -> held -> released (refunded 只保留定義)
class PaymentStatusEnum(str, enum.Enum):
    pending = "pending"
    held = "held"
    released = "released"
    refunded = "refunded"

class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
    )

    payment_id = Column(CHAR(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # --- 關聯 ---
    # 每個需求只會有一筆付款 (unique)，同時擋住重複建立的競態
    request_id = Column(CHAR(36), ForeignKey("requests.request_id", ondelete="RESTRICT"), unique=True, nullable=False)
    bid_id = Column(CHAR(36), ForeignKey("bids.bid_id", ondelete="RESTRICT"), nullable=False, index=True)
    payer_id = Column(CHAR(36), ForeignKey("users.user_id", ondelete="RESTRICT"), nullable=False, index=True)
    payee_id = Column(CHAR(36), ForeignKey("users.user_id", ondelete="RESTRICT"), nullable=False, index=True)

    # 建立時由得標投標的價格複製而來，之後不可變更
    amount = Column(INT, nullable=False)
    status = Column(
        Enum(PaymentStatusEnum, values_callable=lambda obj: [e.value for e in obj], name="payment_status_enum"),
        default=PaymentStatusEnum.pending,
        nullable=False,
    )

    # --- 金流資訊 ---
    order_id = Column(String(64), unique=True, nullable=False)
    payment_key = Column(String(200), nullable=True)
    paid_at = Column(TIMESTAMP, nullable=True)
    released_at = Column(TIMESTAMP, nullable=True)

    created_at = Column(TIMESTAMP, server_default=func.now())

    request = relationship("Request")
    bid = relationship("Bid")
