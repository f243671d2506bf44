# app/repositories/payment_repo.py

import logging
from datetime import datetime
from typing import Optional
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.models.payment import Payment, PaymentStatusEnum
from app.models.request import Request, RequestStatusEnum

logger = logging.getLogger(__name__)

class PaymentRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_one(self, *criteria) -> Optional[Payment]:
        stmt = (
            select(Payment)
            .where(*criteria)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def get_payment_by_id(self, payment_id: str) -> Optional[Payment]:
        return await self._get_one(Payment.payment_id == payment_id)

    async def get_payment_by_request_id(self, request_id: str) -> Optional[Payment]:
        return await self._get_one(Payment.request_id == request_id)

    async def get_payment_by_order_id(self, order_id: str) -> Optional[Payment]:
        return await self._get_one(Payment.order_id == order_id)

    async def create_payment(self, payment: Payment) -> Payment:
        """
        新增付款。同一需求重複建立時由 unique(request_id) 擋下，rollback 後往上拋
        """
        self.db.add(payment)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise
        await self.db.refresh(payment)
        return payment

    async def mark_held(self, payment_id: str, payment_key: str, paid_at: datetime) -> bool:
        """
        pending -> held (金流確認成功後)；已不是 pending 時回傳 False
        """
        result = await self.db.execute(
            update(Payment)
            .where(Payment.payment_id == payment_id, Payment.status == PaymentStatusEnum.pending)
            .values(status=PaymentStatusEnum.held, payment_key=payment_key, paid_at=paid_at)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.db.rollback()
            return False
        await self.db.commit()
        return True

    async def release(self, payment_id: str, request_id: str, released_at: datetime) -> bool:
        """
        撥款：同一個交易內 payment held -> released、request awarded -> completed。
        任何一邊沒更新到就整筆 rollback，不會出現只前進一邊的狀態。
        """
        try:
            result = await self.db.execute(
                update(Payment)
                .where(Payment.payment_id == payment_id, Payment.status == PaymentStatusEnum.held)
                .values(status=PaymentStatusEnum.released, released_at=released_at)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                await self.db.rollback()
                return False

            result = await self.db.execute(
                update(Request)
                .where(Request.request_id == request_id, Request.status == RequestStatusEnum.awarded)
                .values(status=RequestStatusEnum.completed)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                await self.db.rollback()
                return False

            await self.db.commit()
            return True
        except Exception:
            await self.db.rollback()
            logger.error(f"撥款交易失敗 payment={payment_id}", exc_info=True)
            raise
