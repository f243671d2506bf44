# app/routers/notification_router.py

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.database import get_db
from app.models.user import User
from app.core.security import get_current_user
from app.services.notification_service import NotificationService
from app.schemas.notification_schema import MarkAllReadOut, NotificationOut, UnreadCountOut

router = APIRouter(
    prefix="/notifications",
    tags=["Notifications"]
)

@router.get(
    "/my",
    response_model=List[NotificationOut],
    summary="獲取我的通知列表"
)
async def get_my_notifications(
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = Query(False, description="只回傳未讀通知"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    獲取當前登入者的通知列表 (依時間倒序)。
    前端應使用此 API 定期輪詢 (Polling)。
    """
    return await NotificationService(db).get_my_notifications(current_user, limit=limit, unread_only=unread_only)

@router.get("/unread-count", response_model=UnreadCountOut, summary="未讀通知數")
async def get_unread_count(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return UnreadCountOut(count=await NotificationService(db).get_unread_count(current_user))

@router.patch(
    "/read-all",
    response_model=MarkAllReadOut,
    summary="將所有通知設為已讀"
)
async def mark_all_as_read(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return MarkAllReadOut(updated=await NotificationService(db).mark_all_as_read(current_user))

@router.patch(
    "/{notification_id}/read",
    response_model=NotificationOut,
    summary="將通知設為已讀"
)
async def mark_as_read(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    當使用者點擊通知時，前端應呼叫此 API 將其標記為已讀。
    """
    return await NotificationService(db).mark_notification_as_read(notification_id, current_user)
