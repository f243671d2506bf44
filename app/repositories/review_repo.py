# app/repositories/review_repo.py

from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import joinedload

from app.models.review import Review

class ReviewRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    def _review_query(self):
        return select(Review).options(
            joinedload(Review.reviewer),
            joinedload(Review.reviewee),
            joinedload(Review.request),
        )

    async def create_review(self, review: Review) -> Review:
        """
        新增評價。同一人對同一需求重複評價時由 unique 約束擋下
        """
        self.db.add(review)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise
        return await self.get_review_by_id(review.review_id)

    async def get_review_by_id(self, review_id: str) -> Optional[Review]:
        stmt = (
            self._review_query()
            .where(Review.review_id == review_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def get_review_by_reviewer(self, request_id: str, reviewer_id: str) -> Optional[Review]:
        stmt = select(Review).where(Review.request_id == request_id, Review.reviewer_id == reviewer_id)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def list_reviews_for_request(self, request_id: str) -> List[Review]:
        stmt = (
            self._review_query()
            .where(Review.request_id == request_id, Review.is_visible == True)
            .order_by(Review.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def list_reviews_for_user(self, user_id: str) -> List[Review]:
        """
        某位使用者收到的評價 (只含公開的)
        """
        stmt = (
            self._review_query()
            .where(Review.reviewee_id == user_id, Review.is_visible == True)
            .order_by(Review.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def update_review(self, review: Review) -> Review:
        await self.db.commit()
        return await self.get_review_by_id(review.review_id)
