# app/routers/message_router.py

from fastapi import APIRouter, Depends, Query, status, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_db
from app.core.exceptions import MarketplaceError
from app.core.security import get_current_user, get_current_user_from_websocket_token
from app.core.websocket_manager import manager
from app.services.message_service import MessageService
from app.schemas.message_schema import MessageIn, MessageOut, RoomCreate, RoomOut, UnreadMessagesOut
from app.models.user import User
from typing import List
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["Messaging"])

# --- RESTful API ---

@router.get("/rooms", response_model=List[RoomOut], summary="獲取使用者的聊天室列表")
async def list_user_rooms(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    當前登入使用者參與的所有聊天室 (最近有訊息的在前)
    """
    return await MessageService(db).get_user_rooms(user)

@router.post("/rooms", response_model=RoomOut, summary="建立或取得聊天室")
async def create_room(
    room_data: RoomCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    同一需求、同一開發者只會有一間聊天室；已存在時直接回傳
    """
    return await MessageService(db).create_or_get_room(room_data.request_id, room_data.developer_id, user)

@router.get("/rooms/{room_id}", response_model=RoomOut, summary="聊天室資訊")
async def get_room(
    room_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await MessageService(db).get_room(room_id, user)

@router.get("/unread-count", response_model=UnreadMessagesOut, summary="未讀訊息數")
async def get_unread_count(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return UnreadMessagesOut(count=await MessageService(db).get_unread_count(user))

@router.get("/{room_id}/messages", response_model=List[MessageOut], summary="獲取聊天室的歷史訊息")
async def get_history_messages(
    room_id: str,
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    獲取聊天室的歷史訊息 (舊 -> 新)。
    (API 會自動將對方傳來的未讀訊息標記為已讀)
    """
    return await MessageService(db).get_room_messages(room_id, user, limit=limit)

@router.post(
    "/{room_id}/messages",
    response_model=MessageOut,
    status_code=status.HTTP_201_CREATED,
    summary="傳送訊息"
)
async def send_message(
    room_id: str,
    message_in: MessageIn,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await MessageService(db).send_message(room_id, user, message_in.content)


# --- WebSocket Endpoint ---

@router.websocket("/ws/{room_id}")
async def websocket_endpoint(
    websocket: WebSocket,
    room_id: str,
    # 前端連線 URL 必須是: /messages/ws/{room_id}?token=...
    user: User = Depends(get_current_user_from_websocket_token),
    db: AsyncSession = Depends(get_db)
):
    """
    WebSocket 即時通訊端點。
    - 連線 URL: /messages/ws/{room_id}?token=<JWT_TOKEN>
    """
    service = MessageService(db)

    # 1. 驗證連線權限
    try:
        is_participant = await service.check_user_room_permission(room_id, user)
    except MarketplaceError:
        is_participant = False
    if not is_participant:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Room not found or user unauthorized")
        return

    # 2. 建立連線
    await manager.connect(room_id, user.user_id, websocket)

    try:
        while True:
            data = await websocket.receive_text()

            # 3. 儲存到 DB 並廣播 (廣播包含送出者自己)
            try:
                await service.handle_websocket_message(room_id, user, data)
            except MarketplaceError as e:
                await websocket.send_json({"type": "error", "content": e.detail})

    except WebSocketDisconnect:
        manager.disconnect(room_id, user.user_id, websocket)
    except Exception as e:
        logger.error(f"Unexpected error in WS {room_id} for user {user.user_id}: {e}", exc_info=True)
        manager.disconnect(room_id, user.user_id, websocket)
