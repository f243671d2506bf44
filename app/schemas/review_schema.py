# app/schemas/review_schema.py

from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime

from app.schemas.user_schema import UserBrief

# 評分範圍 (1~5) 由 ReviewService 檢查並回傳 Invalid
class ReviewCreate(BaseModel):
    request_id: str
    reviewee_id: str
    rating: int
    comment: Optional[str] = None

class ReviewVisibilityUpdate(BaseModel):
    is_visible: bool

class ReviewRequestBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    request_id: str
    title: str

class ReviewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    review_id: str
    request_id: str
    reviewer_id: str
    reviewee_id: str
    rating: int
    comment: Optional[str] = None
    is_visible: bool
    created_at: datetime

    reviewer: Optional[UserBrief] = None
    reviewee: Optional[UserBrief] = None
    request: Optional[ReviewRequestBrief] = None

class ReviewEligibilityOut(BaseModel):
    can_write: bool
    reason: Optional[str] = None
    reviewee_id: Optional[str] = None
    is_client: Optional[bool] = None
    already_written: bool = False
