# app/services/award_service.py
# 選標 (select winning bid)：唯一能把需求從 open 變成 awarded 的地方

import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.email import awarded_email
from app.core.exceptions import Conflict, Forbidden
from app.models.notification import NotificationTypeEnum
from app.models.request import Request, RequestStatusEnum
from app.models.user import User
from app.repositories.bid_repo import BidRepository
from app.repositories.request_repo import RequestRepository
from app.services.notification_service import NotificationService
from app.utils.clock import format_won, utcnow

logger = logging.getLogger(__name__)


class AwardService:
    def __init__(self, db: AsyncSession, notification_service: Optional[NotificationService] = None):
        self.db = db
        self.bid_repo = BidRepository(db)
        self.request_repo = RequestRepository(db)
        self.notification_service = notification_service or NotificationService(db)

    async def select_winning_bid(self, bid_id: str, client: User) -> Request:
        """
        委託人選擇得標投標。

        事前檢查只用來回傳清楚的錯誤訊息；真正的保證在 BidRepository.award_bid
        的條件式更新：兩個同時送出的選標只有一個會成功，另一個得到 Conflict。
        投標期間結束後仍可選標 (只看 status)。
        """
        bid = await self.bid_repo.get_bid_by_id(bid_id)
        if bid is None:
            raise Conflict("找不到此投標")

        request = bid.request
        if request.client_id != client.user_id:
            raise Forbidden("只有委託人可以選標")
        if request.status != RequestStatusEnum.open:
            raise Conflict("此需求已選標或已結束")

        now = utcnow()
        awarded = await self.bid_repo.award_bid(
            request_id=request.request_id,
            bid_id=bid_id,
            client_id=client.user_id,
            now=now,
        )
        if not awarded:
            # 失敗時 repository 已 rollback，session 內的物件都已過期
            await self.db.refresh(client)
            raise Conflict("此需求已選標或已結束")

        logger.info(f"Request {request.request_id} awarded to bid {bid_id} ({format_won(bid.price)})")

        # --- commit 之後：通知得標者與未得標者 (best-effort) ---
        bids = await self.bid_repo.list_bids_for_request(request.request_id)
        for b in bids:
            if b.bid_id == bid_id:
                subject, html = awarded_email(request.title, b.price, request.request_id)
                self.notification_service.enqueue(
                    user_id=b.developer_id,
                    type=NotificationTypeEnum.awarded,
                    title="恭喜！您已得標",
                    message=f"您對「{request.title}」的投標已被選中",
                    link_url=f"/requests/{request.request_id}",
                    email=(b.developer.email, subject, html) if b.developer else None,
                )
            else:
                self.notification_service.enqueue(
                    user_id=b.developer_id,
                    type=NotificationTypeEnum.not_selected,
                    title="投標結果通知",
                    message=f"很遺憾，您對「{request.title}」的投標未被選中",
                    link_url=f"/requests/{request.request_id}",
                )
        await self.notification_service.dispatch()

        return await self.request_repo.get_request_by_id(request.request_id)
