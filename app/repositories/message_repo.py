# app/repositories/message_repo.py

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload
from typing import Optional, List
from datetime import datetime
import uuid

from app.models.message import ChatRoom, Message

class MessageRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    # --- ChatRoom 相關操作 ---

    def _room_query(self):
        # 聊天室列表/詳情都需要需求標題與雙方名稱
        return select(ChatRoom).options(
            joinedload(ChatRoom.request),
            joinedload(ChatRoom.client),
            joinedload(ChatRoom.developer),
        )

    async def get_room_by_id(self, room_id: str) -> Optional[ChatRoom]:
        stmt = (
            self._room_query()
            .where(ChatRoom.room_id == room_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def find_room(self, request_id: str, developer_id: str) -> Optional[ChatRoom]:
        stmt = (
            self._room_query()
            .where(ChatRoom.request_id == request_id, ChatRoom.developer_id == developer_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def get_or_create_room(self, request_id: str, client_id: str, developer_id: str) -> ChatRoom:
        """
        同一 (需求, 開發者) 只會有一間聊天室；同時建立時由 unique 約束擋下，再讀回既有的那間
        """
        existing_room = await self.find_room(request_id, developer_id)
        if existing_room:
            return existing_room

        self.db.add(ChatRoom(
            room_id=str(uuid.uuid4()),
            request_id=request_id,
            client_id=client_id,
            developer_id=developer_id,
        ))
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()

        room = await self.find_room(request_id, developer_id)
        if room is None:
            raise RuntimeError(f"Failed to create chat room for request {request_id}")
        return room

    async def get_rooms_by_user_id(self, user_id: str) -> List[ChatRoom]:
        """
        使用者參與的所有聊天室 (最近有訊息的在前)
        """
        stmt = (
            self._room_query()
            .where(or_(ChatRoom.client_id == user_id, ChatRoom.developer_id == user_id))
            .order_by(func.coalesce(ChatRoom.last_message_at, ChatRoom.created_at).desc())
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    # --- Message 相關操作 ---

    async def get_messages_by_room_id(self, room_id: str, limit: int = 50) -> List[Message]:
        """
        最近 limit 筆訊息，回傳時由舊到新排列
        """
        stmt = (
            select(Message)
            .where(Message.room_id == room_id)
            .options(joinedload(Message.sender))
            .order_by(Message.created_at.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()[::-1]

    async def get_message_by_id(self, message_id: str) -> Optional[Message]:
        stmt = (
            select(Message)
            .where(Message.message_id == message_id)
            .options(joinedload(Message.sender))
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def save_message(self, room_id: str, sender_id: str, content: str, sent_at: datetime) -> Message:
        """
        單筆 INSERT 訊息，並更新聊天室的 last_message_at
        """
        new_message = Message(
            message_id=str(uuid.uuid4()),
            room_id=room_id,
            sender_id=sender_id,
            content=content,
            is_read=False,
            created_at=sent_at,
        )
        self.db.add(new_message)
        await self.db.execute(
            update(ChatRoom)
            .where(ChatRoom.room_id == room_id)
            .values(last_message_at=sent_at)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return await self.get_message_by_id(new_message.message_id)

    async def mark_messages_as_read(self, room_id: str, user_id: str) -> None:
        """
        將對方傳來的未讀訊息標記為已讀
        """
        update_stmt = (
            update(Message)
            .where(
                and_(
                    Message.room_id == room_id,
                    Message.sender_id != user_id,
                    Message.is_read == False
                )
            )
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        await self.db.execute(update_stmt)
        await self.db.commit()

    async def count_unread_messages(self, user_id: str) -> int:
        stmt = (
            select(func.count(Message.message_id))
            .join(ChatRoom, ChatRoom.room_id == Message.room_id)
            .where(
                or_(ChatRoom.client_id == user_id, ChatRoom.developer_id == user_id),
                Message.sender_id != user_id,
                Message.is_read == False,
            )
        )
        result = await self.db.execute(stmt)
        return result.scalar_one()
