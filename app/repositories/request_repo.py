# app/repositories/request_repo.py
# 需求 (Request) 的資料庫操作

import logging
from datetime import datetime
from typing import Dict, List, Optional
from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import joinedload

from app.models.request import Request, RequestStatusEnum
from app.models.bid import Bid

logger = logging.getLogger(__name__)

class RequestRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_request(self, request: Request) -> Request:
        self.db.add(request)
        await self.db.commit()
        # 重新查詢，預先載入 client (Pydantic 序列化時不可 lazy load)
        return await self.get_request_by_id(request.request_id)

    async def get_request_by_id(self, request_id: str) -> Optional[Request]:
        """
        透過 ID 獲取單一需求 (含委託人)

        populate_existing: 其他 Repository 以 UPDATE 語句改過狀態後，
        session 內的舊物件也會被最新資料覆蓋
        """
        stmt = (
            select(Request)
            .where(Request.request_id == request_id)
            .options(joinedload(Request.client))
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def list_open_requests(self, now: datetime) -> List[Request]:
        """
        投標中的需求：status = open 且尚未過期，新的在前
        """
        stmt = (
            select(Request)
            .where(Request.status == RequestStatusEnum.open, Request.expires_at > now)
            .options(joinedload(Request.client))
            .order_by(Request.created_at.desc())
        )
        result = await self.db.execute(stmt)
        requests = result.scalars().all()
        await self._attach_bid_counts(requests)
        return requests

    async def list_requests_by_client(self, client_id: str) -> List[Request]:
        stmt = (
            select(Request)
            .where(Request.client_id == client_id)
            .options(joinedload(Request.client))
            .order_by(Request.created_at.desc())
        )
        result = await self.db.execute(stmt)
        requests = result.scalars().all()
        await self._attach_bid_counts(requests)
        return requests

    async def count_bids(self, request_ids: List[str]) -> Dict[str, int]:
        if not request_ids:
            return {}
        stmt = (
            select(Bid.request_id, func.count(Bid.bid_id))
            .where(Bid.request_id.in_(request_ids))
            .group_by(Bid.request_id)
        )
        result = await self.db.execute(stmt)
        return {request_id: count for request_id, count in result.all()}

    async def _attach_bid_counts(self, requests: List[Request]) -> None:
        # bid_count 不是欄位，只掛在物件上給 RequestListItem 讀取
        counts = await self.count_bids([r.request_id for r in requests])
        for r in requests:
            r.bid_count = counts.get(r.request_id, 0)

    async def update_request_if_open(self, request_id: str, client_id: str, values: dict) -> bool:
        """
        只有在 status 仍為 open 時才更新 (避免覆寫剛得標的需求)
        """
        stmt = (
            update(Request)
            .where(
                Request.request_id == request_id,
                Request.client_id == client_id,
                Request.status == RequestStatusEnum.open,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount != 1:
            await self.db.rollback()
            return False
        await self.db.commit()
        return True

    async def cancel_request(self, request_id: str, client_id: str) -> bool:
        """
        open -> cancelled 的條件式更新；回傳是否有更新到那一筆
        """
        return await self.update_request_if_open(
            request_id, client_id, {"status": RequestStatusEnum.cancelled}
        )
