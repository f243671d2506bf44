# app/models/notification.py

import enum
import uuid
from sqlalchemy import Column, String, TEXT, BOOLEAN, CHAR, ForeignKey, TIMESTAMP, Enum
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.utils.clock import utcnow

class NotificationTypeEnum(str, enum.Enum):
    new_bid = "new_bid"
    bid_updated = "bid_updated"
    awarded = "awarded"
    not_selected = "not_selected"
    new_message = "new_message"
    review_received = "review_received"
    payment_received = "payment_received"
    project_completed = "project_completed"

class Notification(Base):
    __tablename__ = "notifications"

    notification_id = Column(CHAR(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # (重要) 關聯到接收通知的 user
    user_id = Column(CHAR(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)

    type = Column(
        Enum(NotificationTypeEnum, values_callable=lambda obj: [e.value for e in obj], name="notification_type_enum"),
        nullable=False,
    )
    title = Column(String(255), nullable=False)
    message = Column(TEXT)

    # 點擊通知後要導向的前端 URL
    link_url = Column(String(500))

    is_read = Column(BOOLEAN, default=False, nullable=False)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)

    user = relationship("User")
