# app/repositories/bid_repo.py

from datetime import datetime
from typing import List, Optional
from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import joinedload

from app.models.bid import Bid
from app.models.request import Request, RequestStatusEnum

import logging

logger = logging.getLogger(__name__)

class BidRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_bid(self, bid: Bid) -> Bid:
        """
        新增投標。(request_id, developer_id) 重複時由 unique 約束擋下，
        rollback 後將 IntegrityError 往上拋。
        """
        self.db.add(bid)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise
        return bid

    async def get_bid_by_id(self, bid_id: str) -> Optional[Bid]:
        """
        依 ID 獲取投標 (含需求與開發者)
        """
        stmt = (
            select(Bid)
            .where(Bid.bid_id == bid_id)
            .options(joinedload(Bid.request).joinedload(Request.client), joinedload(Bid.developer))
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def get_bid_by_request_and_developer(self, request_id: str, developer_id: str) -> Optional[Bid]:
        stmt = (
            select(Bid)
            .where(Bid.request_id == request_id, Bid.developer_id == developer_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def list_bids_for_request(self, request_id: str) -> List[Bid]:
        """
        某需求的所有投標 (先投的在前)，附帶開發者
        """
        stmt = (
            select(Bid)
            .where(Bid.request_id == request_id)
            .options(joinedload(Bid.developer))
            .order_by(Bid.created_at.asc())
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def list_bids_by_developer(self, developer_id: str) -> List[Bid]:
        stmt = (
            select(Bid)
            .where(Bid.developer_id == developer_id)
            .options(joinedload(Bid.request))
            .order_by(Bid.created_at.desc())
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    def _revisable(self, bid_id: str, developer_id: str):
        # 尚未被選中、且需求仍為 open 的投標才可修改/撤回
        return (
            Bid.bid_id == bid_id,
            Bid.developer_id == developer_id,
            Bid.is_selected == False,
            Bid.request_id.in_(
                select(Request.request_id).where(Request.status == RequestStatusEnum.open)
            ),
        )

    async def update_bid_if_revisable(self, bid_id: str, developer_id: str, values: dict) -> bool:
        """
        條件式更新：與選標交易同時發生時，只有一方會成功
        """
        stmt = (
            update(Bid)
            .where(*self._revisable(bid_id, developer_id))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount != 1:
            await self.db.rollback()
            return False
        await self.db.commit()
        return True

    async def delete_bid_if_revisable(self, bid_id: str, developer_id: str) -> bool:
        stmt = (
            delete(Bid)
            .where(*self._revisable(bid_id, developer_id))
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount != 1:
            await self.db.rollback()
            return False
        await self.db.commit()
        return True

    async def award_bid(self, request_id: str, bid_id: str, client_id: str, now: datetime) -> bool:
        """
        (核心) 選標交易：一次交易內完成三個更新，任一步沒有更新到預期的筆數就 rollback。

        1. requests: open -> awarded (compare-and-swap，同時只會有一個呼叫者成功)
        2. bids: 同需求的其他投標 is_selected = False
        3. bids: 被選中的投標 is_selected = True (必須屬於此需求且尚未被選中)
        """
        try:
            result = await self.db.execute(
                update(Request)
                .where(
                    Request.request_id == request_id,
                    Request.client_id == client_id,
                    Request.status == RequestStatusEnum.open,
                )
                .values(status=RequestStatusEnum.awarded, awarded_bid_id=bid_id, awarded_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                await self.db.rollback()
                return False

            await self.db.execute(
                update(Bid)
                .where(Bid.request_id == request_id, Bid.bid_id != bid_id)
                .values(is_selected=False, selected_at=None)
                .execution_options(synchronize_session=False)
            )

            result = await self.db.execute(
                update(Bid)
                .where(
                    Bid.bid_id == bid_id,
                    Bid.request_id == request_id,
                    Bid.is_selected == False,
                )
                .values(is_selected=True, selected_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                await self.db.rollback()
                return False

            await self.db.commit()
            return True
        except Exception:
            await self.db.rollback()
            logger.error(f"選標交易失敗 request={request_id} bid={bid_id}", exc_info=True)
            raise
