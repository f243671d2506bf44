# app/schemas/bookmark_schema.py

from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional

from app.schemas.request_schema import RequestSummary
from app.schemas.user_schema import UserBrief

class BookmarkRequestOut(RequestSummary):
    client: Optional[UserBrief] = None

class BookmarkOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    bookmark_id: str
    user_id: str
    request_id: str
    created_at: datetime
    request: Optional[BookmarkRequestOut] = None

class BookmarkStatusOut(BaseModel):
    request_id: str
    is_bookmarked: bool
