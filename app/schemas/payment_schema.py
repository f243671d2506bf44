# app/schemas/payment_schema.py

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime

from app.models.payment import PaymentStatusEnum

# 委託人開始付款 (Input)
class PaymentCreate(BaseModel):
    request_id: str
    bid_id: str

# 金流導回成功頁後送出的付款確認 (Input)
class PaymentConfirm(BaseModel):
    payment_key: str = Field(..., min_length=1)
    order_id: str = Field(..., min_length=1)
    # 只用來比對是否被竄改，確認付款時一律使用資料庫中的金額
    amount: int

# 前端呼叫金流結帳視窗需要的資料
class PaymentCheckoutOut(BaseModel):
    payment_id: str
    order_id: str
    amount: int
    order_name: str
    status: PaymentStatusEnum

class PaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payment_id: str
    request_id: str
    bid_id: str
    payer_id: str
    payee_id: str
    amount: int
    status: PaymentStatusEnum
    order_id: str
    payment_key: Optional[str] = None
    paid_at: Optional[datetime] = None
    released_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
