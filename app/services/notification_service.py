# app/services/notification_service.py

from dataclasses import dataclass
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional, Tuple

from app.core.database import session_factory_for
from app.core.email import EmailSender
from app.core.exceptions import Forbidden, NotFound
from app.models.user import User
from app.models.notification import Notification, NotificationTypeEnum
from app.repositories.notification_repo import NotificationRepository

import logging

logger = logging.getLogger(__name__)


@dataclass
class PendingNotification:
    user_id: str
    type: NotificationTypeEnum
    title: str
    message: Optional[str] = None
    link_url: Optional[str] = None
    # (收件人 email, 主旨, html)；None 表示只發站內通知
    email: Optional[Tuple[str, str, str]] = None


class NotificationService:
    """
    站內通知 + Email。

    其他 Service 在主交易 commit 之後才呼叫 dispatch()：
    每一筆通知、每一封信都各自 try/except，失敗只記 log，
    不會讓投標、選標、付款等主要操作失敗或被 rollback。
    """

    def __init__(self, db: AsyncSession, email_sender: Optional[EmailSender] = None):
        self.db = db
        self.repo = NotificationRepository(db)
        self.email_sender = email_sender or EmailSender()
        self._outbox: List[PendingNotification] = []

    # --- 發送端 (fan-out) ---

    def enqueue(
        self,
        user_id: str,
        type: NotificationTypeEnum,
        title: str,
        message: Optional[str] = None,
        link_url: Optional[str] = None,
        email: Optional[Tuple[str, str, str]] = None,
    ) -> None:
        self._outbox.append(PendingNotification(user_id, type, title, message, link_url, email))

    async def dispatch(self) -> int:
        """
        送出佇列中的通知，回傳成功寫入的站內通知數
        """
        outbox, self._outbox = self._outbox, []
        # 使用獨立的 session：這裡的失敗不會影響呼叫端的 session
        session_factory = session_factory_for(self.db)
        delivered = 0

        for item in outbox:
            try:
                async with session_factory() as session:
                    await NotificationRepository(session).create_notification(
                        Notification(
                            user_id=item.user_id,
                            type=item.type,
                            title=item.title,
                            message=item.message,
                            link_url=item.link_url,
                            is_read=False,
                        )
                    )
                delivered += 1
            except Exception:
                logger.error(f"通知寫入失敗 user={item.user_id} type={item.type.value}", exc_info=True)

            if item.email is not None:
                to, subject, html = item.email
                try:
                    await self.email_sender.send(to, subject, html)
                except Exception:
                    logger.error(f"Email 發送失敗 to={to} type={item.type.value}", exc_info=True)

        return delivered

    # --- 讀取端 (API 用) ---

    async def get_my_notifications(self, user: User, limit: int = 20, unread_only: bool = False) -> List[Notification]:
        return await self.repo.list_notifications_by_user(user.user_id, limit=limit, unread_only=unread_only)

    async def get_unread_count(self, user: User) -> int:
        return await self.repo.count_unread(user.user_id)

    async def mark_notification_as_read(
        self,
        notification_id: str,
        user: User
    ) -> Notification:
        """
        將通知設為已讀，並檢查權限
        """
        notification = await self.repo.get_notification_by_id(notification_id)

        if not notification:
            raise NotFound("通知不存在")

        # (重要) 只能標記自己的通知
        if notification.user_id != user.user_id:
            raise Forbidden("無權操作此通知")

        if notification.is_read:
            return notification # 已讀，直接回傳

        return await self.repo.mark_as_read(notification)

    async def mark_all_as_read(self, user: User) -> int:
        return await self.repo.mark_all_as_read(user.user_id)
