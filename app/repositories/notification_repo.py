# app/repositories/notification_repo.py

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import func, update
from typing import List, Optional
import logging

from app.models.notification import Notification

logger = logging.getLogger(__name__)

class NotificationRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_notification(self, notification: Notification) -> Notification:
        """
        新增一筆通知
        """
        try:
            self.db.add(notification)
            await self.db.commit()
            return notification
        except Exception as e:
            await self.db.rollback()
            logger.error(f"建立通知失敗: {e}", exc_info=True)
            raise

    async def get_notification_by_id(self, notification_id: str) -> Optional[Notification]:
        """
        依 ID 獲取通知 (主要用於權限檢查)
        """
        stmt = select(Notification).where(Notification.notification_id == notification_id)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def list_notifications_by_user(
        self, user_id: str, limit: int = 20, unread_only: bool = False
    ) -> List[Notification]:
        """
        獲取某位使用者的通知 (新的在前)，unread_only 時只取未讀
        """
        stmt = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.is_read == False)
        stmt = stmt.order_by(Notification.created_at.desc()).limit(limit)
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def count_unread(self, user_id: str) -> int:
        stmt = select(func.count(Notification.notification_id)).where(
            Notification.user_id == user_id,
            Notification.is_read == False,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def mark_as_read(self, notification: Notification) -> Notification:
        """
        將單一通知設為已讀
        """
        notification.is_read = True
        await self.db.commit()
        return notification

    async def mark_all_as_read(self, user_id: str) -> int:
        stmt = (
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read == False)
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount
