# app/services/bid_service.py

import logging
import uuid
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import session_factory_for
from app.core.email import new_bid_email
from app.core.exceptions import Conflict, Forbidden, Invalid, NotFound
from app.models.bid import Bid
from app.models.notification import NotificationTypeEnum
from app.models.request import Request, RequestStatusEnum
from app.models.user import User
from app.repositories.bid_repo import BidRepository
from app.repositories.message_repo import MessageRepository
from app.repositories.request_repo import RequestRepository
from app.schemas.bid_schema import BidCreate, BidUpdate
from app.services.notification_service import NotificationService
from app.utils.clock import format_won, utcnow

logger = logging.getLogger(__name__)


def validate_bid_fields(price: int, estimated_days: Optional[int]) -> None:
    if price is None or price <= 0:
        raise Invalid("報價金額必須大於 0")
    if estimated_days is not None and estimated_days <= 0:
        raise Invalid("預計天數必須大於 0")


class BidService:
    """
    投標的新增、修改、撤回與查詢。

    通知與聊天室建立都在主交易 commit 之後執行，失敗只記 log。
    """

    def __init__(self, db: AsyncSession, notification_service: Optional[NotificationService] = None):
        self.db = db
        self.bid_repo = BidRepository(db)
        self.request_repo = RequestRepository(db)
        self.notification_service = notification_service or NotificationService(db)

    def _ensure_open_for_bidding(self, request: Request) -> None:
        if request.status != RequestStatusEnum.open:
            raise Conflict("此需求已截止投標")
        if request.has_expired(utcnow()):
            raise Conflict("投標期間已結束")

    async def submit_bid(self, request_id: str, developer: User, data: BidCreate) -> Bid:
        validate_bid_fields(data.price, data.estimated_days)

        request = await self.request_repo.get_request_by_id(request_id)
        if request is None:
            raise NotFound("找不到此需求")
        if request.client_id == developer.user_id:
            raise Forbidden("不能對自己的需求投標")
        self._ensure_open_for_bidding(request)

        new_bid = Bid(
            bid_id=str(uuid.uuid4()),
            request_id=request_id,
            developer_id=developer.user_id,
            price=data.price,
            message=data.message or None,
            estimated_days=data.estimated_days,
            is_selected=False,
        )
        # 重複投標由 unique 約束判斷 (不先查再寫，避免兩個請求同時通過檢查)
        try:
            bid = await self.bid_repo.create_bid(new_bid)
        except IntegrityError:
            # rollback 讓 session 內的物件全部過期，重新載入呼叫者
            await self.db.refresh(developer)
            raise Conflict("您已對此需求投標，請使用修改投標")

        logger.info(f"Bid {bid.bid_id} submitted on request {request_id} by {developer.user_id} ({format_won(bid.price)})")

        # --- 以下為附帶動作 (best-effort) ---
        client = request.client
        subject, html = new_bid_email(request.title, developer.display_name, bid.price, request_id)
        self.notification_service.enqueue(
            user_id=request.client_id,
            type=NotificationTypeEnum.new_bid,
            title="收到新的投標",
            message=f"{developer.display_name} 對「{request.title}」提出了 {format_won(bid.price)} 的報價",
            link_url=f"/requests/{request_id}",
            email=(client.email, subject, html) if client else None,
        )
        await self.notification_service.dispatch()
        await self._ensure_chat_room(request_id, request.client_id, developer.user_id)

        return bid

    async def _ensure_chat_room(self, request_id: str, client_id: str, developer_id: str) -> None:
        """投標後建立 (或沿用) 委託人與開發者的聊天室，失敗不影響投標"""
        try:
            async with session_factory_for(self.db)() as session:
                await MessageRepository(session).get_or_create_room(request_id, client_id, developer_id)
        except Exception:
            logger.error(f"聊天室建立失敗 request={request_id} developer={developer_id}", exc_info=True)

    async def _get_own_bid(self, bid_id: str, developer: User) -> Bid:
        bid = await self.bid_repo.get_bid_by_id(bid_id)
        if bid is None:
            raise NotFound("找不到此投標")
        if bid.developer_id != developer.user_id:
            raise Forbidden("無權操作此投標")
        return bid

    async def revise_bid(self, bid_id: str, developer: User, data: BidUpdate) -> Bid:
        """
        修改投標：未被選中、需求仍為 open 且未過期
        """
        validate_bid_fields(data.price, data.estimated_days)

        bid = await self._get_own_bid(bid_id, developer)
        if bid.is_selected:
            raise Conflict("已被選中的投標不能修改")
        request = bid.request
        self._ensure_open_for_bidding(request)

        updated = await self.bid_repo.update_bid_if_revisable(
            bid_id,
            developer.user_id,
            {"price": data.price, "message": data.message or None, "estimated_days": data.estimated_days},
        )
        if not updated:
            await self.db.refresh(developer)
            raise Conflict("此投標已無法修改")

        logger.info(f"Bid {bid_id} revised by {developer.user_id} ({format_won(data.price)})")

        self.notification_service.enqueue(
            user_id=request.client_id,
            type=NotificationTypeEnum.bid_updated,
            title="投標內容已修改",
            message=f"{developer.display_name} 將「{request.title}」的報價修改為 {format_won(data.price)}",
            link_url=f"/requests/{request.request_id}",
        )
        await self.notification_service.dispatch()

        return await self.bid_repo.get_bid_by_id(bid_id)

    async def withdraw_bid(self, bid_id: str, developer: User) -> None:
        bid = await self._get_own_bid(bid_id, developer)
        if bid.is_selected:
            raise Conflict("已被選中的投標不能撤回")
        if bid.request.status != RequestStatusEnum.open:
            raise Conflict("此需求已截止投標")

        if not await self.bid_repo.delete_bid_if_revisable(bid_id, developer.user_id):
            await self.db.refresh(developer)
            raise Conflict("此投標已無法撤回")
        logger.info(f"Bid {bid_id} withdrawn by {developer.user_id}")

    # --- 查詢 ---

    async def list_bids_for_request(self, request_id: str) -> List[Bid]:
        if await self.request_repo.get_request_by_id(request_id) is None:
            raise NotFound("找不到此需求")
        return await self.bid_repo.list_bids_for_request(request_id)

    async def list_my_bids(self, developer: User) -> List[Bid]:
        return await self.bid_repo.list_bids_by_developer(developer.user_id)

    async def get_my_bid_for_request(self, request_id: str, developer: User) -> Bid:
        bid = await self.bid_repo.get_bid_by_request_and_developer(request_id, developer.user_id)
        if bid is None:
            raise NotFound("您尚未對此需求投標")
        return bid
