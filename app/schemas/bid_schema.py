# app/schemas/bid_schema.py
from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime
from app.models.user import UserRoleEnum
from app.schemas.request_schema import RequestSummary

# 1. 開發者提出/修改投標 (Input)
# 金額與天數必須為正數，由 BidService 檢查並回傳 Invalid
class BidCreate(BaseModel):
    price: int
    message: Optional[str] = None
    estimated_days: Optional[int] = None

class BidUpdate(BidCreate):
    pass

# 2. 基本回傳格式
class BidOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    bid_id: str
    request_id: str
    developer_id: str
    price: int
    message: Optional[str] = None
    estimated_days: Optional[int] = None
    is_selected: bool
    selected_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

# 3. 委託人檢視投標列表時，附帶開發者的公開資料
class DeveloperBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    display_name: str
    role: UserRoleEnum
    bio: Optional[str] = None
    portfolio_url: Optional[str] = None

class BidOutWithDeveloper(BidOut):
    developer: DeveloperBrief

# 4. 開發者檢視自己的投標時，附帶需求摘要
class BidOutWithRequest(BidOut):
    request: RequestSummary

