# app/models/bookmark.py

import uuid
from sqlalchemy import Column, TIMESTAMP, CHAR, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.utils.clock import utcnow

class Bookmark(Base):
    __tablename__ = "bookmarks"
    __table_args__ = (
        UniqueConstraint("user_id", "request_id", name="uq_bookmarks_user_request"),
    )

    bookmark_id = Column(CHAR(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(CHAR(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    request_id = Column(CHAR(36), ForeignKey("requests.request_id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)

    request = relationship("Request")
