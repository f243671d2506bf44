# app/schemas/message_schema.py

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime

from app.models.request import RequestStatusEnum
from app.schemas.user_schema import UserBrief

class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    message_id: str
    room_id: str
    sender_id: str
    content: str
    is_read: bool
    created_at: datetime
    # 為了顯示 Sender Name
    sender: Optional[UserBrief] = None

class MessageIn(BaseModel):
    """
    REST 與 WebSocket 傳入的訊息格式
    """
    content: str = Field(..., max_length=5000, description="訊息內容")

class RoomCreate(BaseModel):
    """
    用於建立 (或取得) 聊天室的請求體
    """
    request_id: str = Field(..., description="關聯的需求 ID")
    developer_id: str = Field(..., description="對話的開發者 ID")

class RoomRequestBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    request_id: str
    title: str
    status: RequestStatusEnum

class RoomOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    room_id: str
    request_id: str
    client_id: str
    developer_id: str
    last_message_at: Optional[datetime] = None
    created_at: datetime
    # (注意: 不包含 messages，messages 通過單獨的 API 或 WS 獲取)
    request: Optional[RoomRequestBrief] = None
    client: Optional[UserBrief] = None
    developer: Optional[UserBrief] = None

class UnreadMessagesOut(BaseModel):
    count: int
