# app/models/review.py

import uuid
from sqlalchemy import (
    Column, TEXT, INT, BOOLEAN, TIMESTAMP, CHAR, ForeignKey, CheckConstraint, UniqueConstraint
)
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.utils.clock import utcnow

class Review(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("request_id", "reviewer_id", name="uq_reviews_request_reviewer"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
    )

    review_id = Column(CHAR(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    request_id = Column(CHAR(36), ForeignKey("requests.request_id", ondelete="CASCADE"), nullable=False, index=True)
    reviewer_id = Column(CHAR(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    reviewee_id = Column(CHAR(36), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)

    rating = Column(INT, nullable=False)
    comment = Column(TEXT)
    # 管理員可隱藏不當評價
    is_visible = Column(BOOLEAN, default=True, nullable=False)
    created_at = Column(TIMESTAMP, nullable=False, default=utcnow)

    request = relationship("Request")
    reviewer = relationship("User", foreign_keys=[reviewer_id])
    reviewee = relationship("User", foreign_keys=[reviewee_id])
