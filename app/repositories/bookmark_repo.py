# app/repositories/bookmark_repo.py

from typing import List, Optional
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import joinedload

from app.models.bookmark import Bookmark
from app.models.request import Request

class BookmarkRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_bookmark(self, bookmark: Bookmark) -> Bookmark:
        self.db.add(bookmark)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise
        return await self.get_bookmark(bookmark.user_id, bookmark.request_id)

    async def get_bookmark(self, user_id: str, request_id: str) -> Optional[Bookmark]:
        stmt = (
            select(Bookmark)
            .where(Bookmark.user_id == user_id, Bookmark.request_id == request_id)
            .options(joinedload(Bookmark.request).joinedload(Request.client))
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def delete_bookmark(self, user_id: str, request_id: str) -> int:
        result = await self.db.execute(
            delete(Bookmark)
            .where(Bookmark.user_id == user_id, Bookmark.request_id == request_id)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount

    async def list_bookmarks_by_user(self, user_id: str) -> List[Bookmark]:
        stmt = (
            select(Bookmark)
            .where(Bookmark.user_id == user_id)
            .options(joinedload(Bookmark.request).joinedload(Request.client))
            .order_by(Bookmark.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()
