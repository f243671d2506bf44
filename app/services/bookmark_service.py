# app/services/bookmark_service.py

import uuid
from typing import List
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import Conflict, NotFound
from app.models.bookmark import Bookmark
from app.models.user import User
from app.repositories.bookmark_repo import BookmarkRepository
from app.repositories.request_repo import RequestRepository


class BookmarkService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.bookmark_repo = BookmarkRepository(db)
        self.request_repo = RequestRepository(db)

    async def add_bookmark(self, user: User, request_id: str) -> Bookmark:
        if await self.request_repo.get_request_by_id(request_id) is None:
            raise NotFound("找不到此需求")
        try:
            return await self.bookmark_repo.create_bookmark(
                Bookmark(bookmark_id=str(uuid.uuid4()), user_id=user.user_id, request_id=request_id)
            )
        except IntegrityError:
            await self.db.refresh(user)
            raise Conflict("已加入書籤")

    async def remove_bookmark(self, user: User, request_id: str) -> None:
        # 沒有書籤時視為已移除
        await self.bookmark_repo.delete_bookmark(user.user_id, request_id)

    async def list_my_bookmarks(self, user: User) -> List[Bookmark]:
        return await self.bookmark_repo.list_bookmarks_by_user(user.user_id)

    async def is_bookmarked(self, user: User, request_id: str) -> bool:
        return await self.bookmark_repo.get_bookmark(user.user_id, request_id) is not None
