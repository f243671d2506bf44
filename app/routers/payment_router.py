# app/routers/payment_router.py

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.payment_gateway import TossPaymentsClient, get_payment_gateway
from app.core.security import get_current_user
from app.models.user import User
from app.services.payment_service import PaymentService
from app.schemas.payment_schema import PaymentCheckoutOut, PaymentConfirm, PaymentCreate, PaymentOut

router = APIRouter(
    prefix="/payments",
    tags=["Payments"],
    dependencies=[Depends(get_current_user)]
)

@router.post("", response_model=PaymentCheckoutOut, status_code=status.HTTP_201_CREATED)
async def create_payment(
    payment_data: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    gateway: TossPaymentsClient = Depends(get_payment_gateway)
):
    """
    (委託人) 建立付款，回傳結帳視窗需要的 order_id 與金額。
    已有 pending 付款時回傳同一筆 (重複送出不會建立第二筆)。
    """
    return await PaymentService(db, gateway=gateway).create_checkout(
        payment_data.request_id, payment_data.bid_id, current_user
    )

@router.post("/confirm", response_model=PaymentOut)
async def confirm_payment(
    confirm_data: PaymentConfirm,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    gateway: TossPaymentsClient = Depends(get_payment_gateway)
):
    """
    金流導回成功頁後確認付款 (pending -> held)。
    amount 只用於比對，實際確認金額以資料庫為準。
    """
    return await PaymentService(db, gateway=gateway).confirm_payment(
        payment_key=confirm_data.payment_key,
        order_id=confirm_data.order_id,
        amount=confirm_data.amount,
        user=current_user,
    )

@router.post("/{payment_id}/release", response_model=PaymentOut)
async def release_payment(
    payment_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    gateway: TossPaymentsClient = Depends(get_payment_gateway)
):
    """
    (委託人) 確認專案完成並撥款 (held -> released，需求 -> completed)
    """
    return await PaymentService(db, gateway=gateway).release_payment(payment_id, current_user)
