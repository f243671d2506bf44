# app/schemas/request_schema.py
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional
from datetime import datetime, timezone
from app.models.request import RequestStatusEnum
from app.schemas.user_schema import UserBrief


def _to_naive_utc(v: Optional[datetime]) -> Optional[datetime]:
    # 資料庫存 naive UTC；前端送來帶時區的時間先轉成 UTC
    if v is not None and v.tzinfo is not None:
        return v.astimezone(timezone.utc).replace(tzinfo=None)
    return v


# 1. 基礎欄位 (長度與預算區間的規則由 RequestService 檢查，回傳 Invalid)
class RequestBase(BaseModel):
    title: str = Field(..., max_length=255)
    description: str
    budget_min: int
    budget_max: int
    deadline: Optional[datetime] = None

    @field_validator('deadline')
    @classmethod
    def normalize_deadline(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _to_naive_utc(v)

# 2. 委託人刊登需求 (Input)
class RequestCreate(RequestBase):
    pass

# 3. 委託人修改需求 (Input)，只能在 open 狀態下修改，投標期限不會改變
class RequestUpdate(RequestBase):
    pass

# 4. 回傳給前端的需求資料 (Output)
class RequestOut(RequestBase):
    model_config = ConfigDict(from_attributes=True)

    request_id: str
    client_id: str
    status: RequestStatusEnum
    created_at: datetime
    expires_at: datetime
    awarded_bid_id: Optional[str] = None
    awarded_at: Optional[datetime] = None

    # 衍生欄位：投標期間已過 (status 仍可能是 open)
    is_expired: bool

    client: Optional[UserBrief] = None

# 5. 列表用 (附帶投標數)
class RequestListItem(RequestOut):
    bid_count: int = 0

# 6. 投標列表中顯示的需求摘要
class RequestSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    request_id: str
    title: str
    status: RequestStatusEnum
    budget_min: int
    budget_max: int
    expires_at: datetime
    is_expired: bool
