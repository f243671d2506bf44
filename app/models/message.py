# app/models/message.py

import uuid
from sqlalchemy import Column, Text, ForeignKey, TIMESTAMP, CHAR, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.utils.clock import utcnow

class ChatRoom(Base):
    """委託人與開發者針對某一需求的一對一聊天室"""
    __tablename__ = "chat_rooms"
    __table_args__ = (
        # 同一需求、同一開發者只會有一間聊天室
        UniqueConstraint("request_id", "developer_id", name="uq_chat_rooms_request_developer"),
    )

    room_id = Column(CHAR(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    request_id = Column(CHAR(36), ForeignKey("requests.request_id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(CHAR(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    developer_id = Column(CHAR(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)

    last_message_at = Column(TIMESTAMP, nullable=True)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)

    request = relationship("Request")
    client = relationship("User", foreign_keys=[client_id])
    developer = relationship("User", foreign_keys=[developer_id])

    messages = relationship(
        "Message",
        back_populates="room",
        cascade="all, delete-orphan",
    )

    def has_participant(self, user_id: str) -> bool:
        return user_id in (self.client_id, self.developer_id)

    def counterpart_of(self, user_id: str) -> str:
        return self.developer_id if user_id == self.client_id else self.client_id

class Message(Base):
    __tablename__ = "messages"
    message_id = Column(CHAR(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    room_id = Column(CHAR(36), ForeignKey("chat_rooms.room_id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(CHAR(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)

    room = relationship("ChatRoom", back_populates="messages")
    sender = relationship("User")
