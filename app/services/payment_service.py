# app/services/payment_service.py
# 託管付款 (escrow)：pending -> held -> released

import logging
import secrets
import time
import uuid
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.email import payment_received_email, project_completed_email
from app.core.exceptions import Conflict, Forbidden, NotFound
from app.core.payment_gateway import TossPaymentsClient
from app.models.notification import NotificationTypeEnum
from app.models.payment import Payment, PaymentStatusEnum
from app.models.request import Request, RequestStatusEnum
from app.models.user import User
from app.repositories.bid_repo import BidRepository
from app.repositories.payment_repo import PaymentRepository
from app.repositories.request_repo import RequestRepository
from app.repositories.user_repo import UserRepository
from app.schemas.payment_schema import PaymentCheckoutOut
from app.services.notification_service import NotificationService
from app.utils.clock import format_won, utcnow

logger = logging.getLogger(__name__)


def generate_order_id() -> str:
    """金流使用的訂單編號 (e.g., ORDER_1718000000000_a1b2c3)"""
    return f"ORDER_{int(time.time() * 1000)}_{secrets.token_hex(3)}"


class PaymentService:
    def __init__(
        self,
        db: AsyncSession,
        gateway: Optional[TossPaymentsClient] = None,
        notification_service: Optional[NotificationService] = None,
    ):
        self.db = db
        self.payment_repo = PaymentRepository(db)
        self.request_repo = RequestRepository(db)
        self.bid_repo = BidRepository(db)
        self.user_repo = UserRepository(db)
        self.gateway = gateway or TossPaymentsClient()
        self.notification_service = notification_service or NotificationService(db)

    def _reuse_pending(self, payment: Payment) -> Payment:
        # 重複送出 (連點、上一頁重送) 時沿用同一筆 pending 付款
        if payment.status != PaymentStatusEnum.pending:
            raise Conflict("此需求已完成付款")
        return payment

    async def create_payment(self, request_id: str, bid_id: str, client: User) -> Payment:
        """
        建立付款 (呼叫金流結帳之前)。金額取自得標投標的價格，不接受前端傳入。
        """
        request = await self.request_repo.get_request_by_id(request_id)
        if request is None:
            raise NotFound("找不到此需求")
        if request.client_id != client.user_id:
            raise Forbidden("沒有付款權限")
        if request.status != RequestStatusEnum.awarded:
            raise Conflict("只有已選標的需求可以付款")
        if request.awarded_bid_id != bid_id:
            raise Conflict("只能對得標的投標付款")

        existing = await self.payment_repo.get_payment_by_request_id(request_id)
        if existing:
            return self._reuse_pending(existing)

        bid = await self.bid_repo.get_bid_by_id(bid_id)
        if bid is None:
            raise NotFound("找不到投標資訊")

        new_payment = Payment(
            payment_id=str(uuid.uuid4()),
            request_id=request_id,
            bid_id=bid_id,
            payer_id=client.user_id,
            payee_id=bid.developer_id,
            amount=bid.price,
            status=PaymentStatusEnum.pending,
            order_id=generate_order_id(),
        )
        try:
            payment = await self.payment_repo.create_payment(new_payment)
        except IntegrityError:
            # 同時建立的另一個請求先寫入了
            existing = await self.payment_repo.get_payment_by_request_id(request_id)
            if existing is None:
                raise
            return self._reuse_pending(existing)

        logger.info(f"Payment {payment.payment_id} created for request {request_id}: {format_won(payment.amount)}, order {payment.order_id}")
        return payment

    async def create_checkout(self, request_id: str, bid_id: str, client: User) -> PaymentCheckoutOut:
        """建立 (或沿用) 付款，並回傳金流結帳視窗需要的資料"""
        payment = await self.create_payment(request_id, bid_id, client)
        request = await self.request_repo.get_request_by_id(request_id)
        return PaymentCheckoutOut(
            payment_id=payment.payment_id,
            order_id=payment.order_id,
            amount=payment.amount,
            order_name=request.title,
            status=payment.status,
        )

    async def confirm_payment(self, payment_key: str, order_id: str, amount: int, user: User) -> Payment:
        """
        金流導回後確認付款。

        前端傳來的 amount 只用於偵測竄改；呼叫金流與記錄的金額一律是 payment.amount。
        金流失敗時拋出 GatewayError，付款維持 pending，可由同一付款人重試。
        """
        payment = await self.payment_repo.get_payment_by_order_id(order_id)
        if payment is None:
            raise NotFound("找不到付款資訊")
        if payment.payer_id != user.user_id:
            raise Forbidden("沒有付款權限")

        if payment.amount != amount:
            logger.warning(f"Payment amount mismatch! order={order_id} stored={payment.amount} supplied={amount}")
            raise Conflict("付款金額不一致，請重新操作")

        if payment.status != PaymentStatusEnum.pending:
            raise Conflict("已處理過的付款")

        await self.gateway.confirm_payment(payment_key, order_id, payment.amount)

        if not await self.payment_repo.mark_held(payment.payment_id, payment_key, utcnow()):
            await self.db.refresh(user)
            raise Conflict("已處理過的付款")

        logger.info(f"Payment {payment.payment_id} held in escrow: {format_won(payment.amount)}")

        request = await self.request_repo.get_request_by_id(payment.request_id)
        await self._notify_payee(
            payment,
            request,
            NotificationTypeEnum.payment_received,
            "付款已完成",
            f"{format_won(payment.amount)} 已存入平台託管",
            payment_received_email,
        )

        return await self.payment_repo.get_payment_by_id(payment.payment_id)

    async def release_payment(self, payment_id: str, user: User) -> Payment:
        """
        委託人確認專案完成後撥款；這是需求變成 completed 的唯一途徑
        """
        payment = await self.payment_repo.get_payment_by_id(payment_id)
        if payment is None:
            raise NotFound("找不到付款資訊")
        if payment.payer_id != user.user_id:
            raise Forbidden("沒有撥款權限")
        if payment.status != PaymentStatusEnum.held:
            raise Conflict("此付款不在託管中")

        if not await self.payment_repo.release(payment_id, payment.request_id, utcnow()):
            await self.db.refresh(user)
            raise Conflict("此付款不在託管中")

        logger.info(f"Payment {payment_id} released, request {payment.request_id} completed")

        request = await self.request_repo.get_request_by_id(payment.request_id)
        await self._notify_payee(
            payment,
            request,
            NotificationTypeEnum.project_completed,
            "專案已完成",
            f"{format_won(payment.amount)} 已完成撥款",
            project_completed_email,
        )

        return await self.payment_repo.get_payment_by_id(payment_id)

    async def _notify_payee(self, payment: Payment, request: Request, type, title, message, email_template) -> None:
        payee = await self.user_repo.get_user_by_id(payment.payee_id)
        email = None
        if payee is not None:
            subject, html = email_template(request.title, payment.amount, payment.request_id)
            email = (payee.email, subject, html)
        self.notification_service.enqueue(
            user_id=payment.payee_id,
            type=type,
            title=title,
            message=message,
            link_url=f"/requests/{payment.request_id}",
            email=email,
        )
        await self.notification_service.dispatch()

    async def get_payment_for_request(self, request_id: str, user: User) -> Payment:
        payment = await self.payment_repo.get_payment_by_request_id(request_id)
        if payment is None:
            raise NotFound("此需求尚未建立付款")
        if user.user_id not in (payment.payer_id, payment.payee_id):
            raise Forbidden("無權查看此付款")
        return payment
