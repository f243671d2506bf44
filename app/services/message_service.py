# app/services/message_service.py

from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import logging
import json

from pydantic import ValidationError

from app.core.exceptions import Forbidden, Invalid, NotFound
from app.core.websocket_manager import ConnectionManager, manager
from app.schemas.message_schema import MessageIn, MessageOut
from app.repositories.message_repo import MessageRepository
from app.repositories.request_repo import RequestRepository
from app.models.user import User
from app.models.message import ChatRoom, Message
from app.models.notification import NotificationTypeEnum
from app.services.notification_service import NotificationService
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 50


class MessageService:
    def __init__(
        self,
        db: AsyncSession,
        notification_service: Optional[NotificationService] = None,
        connection_manager: Optional[ConnectionManager] = None,
    ):
        self.db = db
        self.message_repo = MessageRepository(db)
        self.request_repo = RequestRepository(db)
        self.notification_service = notification_service or NotificationService(db)
        self.manager = connection_manager or manager

    async def create_or_get_room(self, request_id: str, developer_id: str, user: User) -> ChatRoom:
        """
        建立 (或取得既有的) 聊天室。只有需求的委託人或該開發者本人可以建立。
        """
        request = await self.request_repo.get_request_by_id(request_id)
        if request is None:
            raise NotFound("找不到此需求")
        if developer_id == request.client_id:
            raise Invalid("不能與自己建立聊天室")
        if user.user_id not in (request.client_id, developer_id):
            raise Forbidden("無權限建立此需求的聊天室")

        return await self.message_repo.get_or_create_room(request_id, request.client_id, developer_id)

    async def get_user_rooms(self, user: User) -> List[ChatRoom]:
        return await self.message_repo.get_rooms_by_user_id(user.user_id)

    async def get_room(self, room_id: str, user: User) -> ChatRoom:
        room = await self.message_repo.get_room_by_id(room_id)
        if room is None:
            raise NotFound("聊天室不存在")
        if not room.has_participant(user.user_id):
            raise Forbidden("無權限查看此聊天室")
        return room

    async def check_user_room_permission(self, room_id: str, user: User) -> bool:
        """
        檢查使用者是否有權限進入此聊天室 (WS 驗證用)
        """
        room = await self.message_repo.get_room_by_id(room_id)
        if room is None:
            raise NotFound("聊天室不存在")
        return room.has_participant(user.user_id)

    async def get_room_messages(self, room_id: str, user: User, limit: int = 50) -> List[Message]:
        """
        獲取歷史訊息 (舊 -> 新)，並將對方傳來的訊息標記為已讀
        """
        await self.get_room(room_id, user)
        try:
            await self.message_repo.mark_messages_as_read(room_id, user.user_id)
        except Exception as e:
            await self.db.rollback()
            logger.error(f"標記已讀失敗: {e}", exc_info=True)
        return await self.message_repo.get_messages_by_room_id(room_id, limit=limit)

    async def send_message(self, room_id: str, sender: User, content: str) -> Message:
        """
        儲存訊息、通知對方、並廣播給已連線的 WebSocket
        """
        room = await self.get_room(room_id, sender)

        content = (content or "").strip()
        if not content:
            raise Invalid("訊息內容不能為空")

        new_message = await self.message_repo.save_message(
            room_id=room_id,
            sender_id=sender.user_id,
            content=content,
            sent_at=utcnow(),
        )

        # commit 之後才通知對方
        title = room.request.title if room.request else "聊天室"
        preview = content if len(content) <= PREVIEW_LENGTH else content[:PREVIEW_LENGTH] + "..."
        self.notification_service.enqueue(
            user_id=room.counterpart_of(sender.user_id),
            type=NotificationTypeEnum.new_message,
            title=f"您在「{title}」中有新訊息",
            message=f"{sender.display_name}：{preview}",
            link_url=f"/chat/{room_id}",
        )
        await self.notification_service.dispatch()

        broadcast_msg = MessageOut.model_validate(new_message).model_dump_json()
        await self.manager.broadcast_message(room_id, broadcast_msg)

        return new_message

    async def handle_websocket_message(self, room_id: str, sender: User, message_data: str) -> Message:
        """
        處理 WebSocket 收到的訊息 (JSON: {"content": "..."})
        """
        try:
            message_in = MessageIn(**json.loads(message_data))
        except (ValueError, TypeError, ValidationError):
            raise Invalid("訊息格式錯誤")
        return await self.send_message(room_id, sender, message_in.content)

    async def get_unread_count(self, user: User) -> int:
        return await self.message_repo.count_unread_messages(user.user_id)
