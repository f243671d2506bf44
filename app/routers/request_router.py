# app/routers/request_router.py
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

# 匯入核心依賴
from app.core.database import get_db
from app.core.security import get_current_user
from app.models.user import User

# 匯入 Service 和 Schemas
from app.services.request_service import RequestService
from app.services.contract_service import ContractService
from app.services.payment_service import PaymentService
from app.services.review_service import ReviewService
from app.schemas.request_schema import RequestCreate, RequestListItem, RequestOut, RequestUpdate
from app.schemas.contract_schema import ContractOut
from app.schemas.payment_schema import PaymentOut
from app.schemas.review_schema import ReviewEligibilityOut, ReviewOut

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/requests",
    tags=["Requests"],
    # (重要) 該模組下的所有 API 都至少需要登入
    dependencies=[Depends(get_current_user)]
)

@router.post("", response_model=RequestOut, status_code=status.HTTP_201_CREATED)
async def create_new_request(
    request_data: RequestCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    刊登新需求。投標期間自刊登起固定 48 小時。
    """
    return await RequestService(db).create_request(request_data, current_user)

@router.get("", response_model=List[RequestListItem])
async def list_open_requests(db: AsyncSession = Depends(get_db)):
    """
    投標中的需求列表 (已過期的不顯示)，附帶投標數
    """
    return await RequestService(db).list_open_requests()

@router.get("/my", response_model=List[RequestListItem])
async def read_my_requests(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    獲取當前登入委託人自己刊登的所有需求
    """
    return await RequestService(db).list_my_requests(current_user)

@router.get("/{request_id}", response_model=RequestOut)
async def get_request_by_id(
    request_id: str,
    db: AsyncSession = Depends(get_db)
):
    return await RequestService(db).get_request(request_id)

@router.put("/{request_id}", response_model=RequestOut)
async def update_request_details(
    request_id: str,
    request_data: RequestUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    (委託人) 修改投標中需求的內容
    """
    return await RequestService(db).update_request(request_id, request_data, current_user)

@router.post("/{request_id}/cancel", response_model=RequestOut)
async def cancel_request(
    request_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    (委託人) 取消投標中的需求 (open -> cancelled)
    """
    return await RequestService(db).cancel_request(request_id, current_user)

@router.get("/{request_id}/contract", response_model=ContractOut)
async def get_contract(
    request_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    合約草案 (僅限委託人與得標開發者)
    """
    return await ContractService(db).get_contract(request_id, current_user)

@router.get("/{request_id}/payment", response_model=PaymentOut)
async def get_payment_for_request(
    request_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await PaymentService(db).get_payment_for_request(request_id, current_user)

@router.get("/{request_id}/reviews", response_model=List[ReviewOut])
async def list_reviews_for_request(
    request_id: str,
    db: AsyncSession = Depends(get_db)
):
    return await ReviewService(db).list_reviews_for_request(request_id)

@router.get("/{request_id}/reviews/eligibility", response_model=ReviewEligibilityOut)
async def can_write_review(
    request_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    目前使用者是否可以對此需求撰寫評價，以及評價對象
    """
    return await ReviewService(db).can_write_review(request_id, current_user)
