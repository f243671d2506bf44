# app/services/review_service.py

import logging
import uuid
from typing import List, Optional, Tuple
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import Conflict, Forbidden, Invalid, NotFound
from app.models.notification import NotificationTypeEnum
from app.models.request import Request, RequestStatusEnum
from app.models.review import Review
from app.models.user import User
from app.repositories.bid_repo import BidRepository
from app.repositories.request_repo import RequestRepository
from app.repositories.review_repo import ReviewRepository
from app.schemas.review_schema import ReviewCreate, ReviewEligibilityOut
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

REVIEWABLE_STATUSES = (RequestStatusEnum.awarded, RequestStatusEnum.completed)


class ReviewService:
    def __init__(self, db: AsyncSession, notification_service: Optional[NotificationService] = None):
        self.db = db
        self.review_repo = ReviewRepository(db)
        self.request_repo = RequestRepository(db)
        self.bid_repo = BidRepository(db)
        self.notification_service = notification_service or NotificationService(db)

    async def _awarded_parties(self, request: Request) -> Optional[Tuple[str, str]]:
        """回傳 (委託人 ID, 得標開發者 ID)；沒有得標投標時回傳 None"""
        if not request.awarded_bid_id:
            return None
        bid = await self.bid_repo.get_bid_by_id(request.awarded_bid_id)
        if bid is None:
            return None
        return request.client_id, bid.developer_id

    async def submit_review(self, data: ReviewCreate, reviewer: User) -> Review:
        if data.rating < 1 or data.rating > 5:
            raise Invalid("評分必須介於 1~5 分")

        request = await self.request_repo.get_request_by_id(data.request_id)
        if request is None:
            raise NotFound("找不到此需求")
        if request.status not in REVIEWABLE_STATUSES:
            raise Conflict("只有已選標的需求可以評價")

        parties = await self._awarded_parties(request)
        if parties is None:
            raise NotFound("找不到得標資訊")
        client_id, developer_id = parties

        # 只有委託人與得標開發者可以互相評價
        if reviewer.user_id == client_id:
            expected_reviewee = developer_id
        elif reviewer.user_id == developer_id:
            expected_reviewee = client_id
        else:
            raise Forbidden("沒有評價權限")
        if data.reviewee_id != expected_reviewee:
            raise Invalid("只能評價合作的對方")

        new_review = Review(
            review_id=str(uuid.uuid4()),
            request_id=data.request_id,
            reviewer_id=reviewer.user_id,
            reviewee_id=data.reviewee_id,
            rating=data.rating,
            comment=data.comment or None,
            is_visible=True,
        )
        try:
            review = await self.review_repo.create_review(new_review)
        except IntegrityError:
            await self.db.refresh(reviewer)
            raise Conflict("您已評價過此需求")

        logger.info(f"Review {review.review_id} on request {data.request_id}: {reviewer.user_id} -> {data.reviewee_id} ({data.rating})")

        self.notification_service.enqueue(
            user_id=data.reviewee_id,
            type=NotificationTypeEnum.review_received,
            title="收到新的評價",
            message=f"您在「{request.title}」獲得 {data.rating} 分的評價",
            link_url=f"/requests/{data.request_id}",
        )
        await self.notification_service.dispatch()

        return review

    async def can_write_review(self, request_id: str, user: User) -> ReviewEligibilityOut:
        request = await self.request_repo.get_request_by_id(request_id)
        if request is None or not request.awarded_bid_id:
            return ReviewEligibilityOut(can_write=False, reason="此需求尚未選標")
        if request.status not in REVIEWABLE_STATUSES:
            return ReviewEligibilityOut(can_write=False, reason="只有已選標的需求可以評價")

        parties = await self._awarded_parties(request)
        if parties is None:
            return ReviewEligibilityOut(can_write=False, reason="找不到得標資訊")
        client_id, developer_id = parties

        is_client = user.user_id == client_id
        if not is_client and user.user_id != developer_id:
            return ReviewEligibilityOut(can_write=False, reason="沒有評價權限")

        if await self.review_repo.get_review_by_reviewer(request_id, user.user_id):
            return ReviewEligibilityOut(can_write=False, reason="您已評價過此需求", already_written=True)

        return ReviewEligibilityOut(
            can_write=True,
            reviewee_id=developer_id if is_client else client_id,
            is_client=is_client,
        )

    async def list_reviews_for_request(self, request_id: str) -> List[Review]:
        return await self.review_repo.list_reviews_for_request(request_id)

    async def list_reviews_for_user(self, user_id: str) -> List[Review]:
        return await self.review_repo.list_reviews_for_user(user_id)

    async def set_review_visibility(self, review_id: str, admin: User, is_visible: bool) -> Review:
        """
        (管理員) 隱藏或重新公開評價
        """
        review = await self.review_repo.get_review_by_id(review_id)
        if review is None:
            raise NotFound("找不到此評價")
        review.is_visible = is_visible
        logger.info(f"Review {review_id} visibility set to {is_visible} by admin {admin.user_id}")
        return await self.review_repo.update_review(review)
