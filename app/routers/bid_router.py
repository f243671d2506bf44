# app/routers/bid_router.py

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.database import get_db
from app.core.security import get_current_user
from app.models.user import User
from app.services.bid_service import BidService
from app.services.award_service import AwardService
from app.schemas.bid_schema import (
    BidCreate,
    BidOut,
    BidOutWithDeveloper,
    BidOutWithRequest,
    BidUpdate,
)
from app.schemas.request_schema import RequestOut

# 建立 API Router
router = APIRouter(
    prefix="/bids",
    tags=["Bids"],
    dependencies=[Depends(get_current_user)] # 重要：此 router 下所有 API 都需要登入
)

# -----------------------------------------------------------------
# 掛在 /requests/{request_id}/bids 下的 API，語意更清晰
# -----------------------------------------------------------------
request_bid_router = APIRouter(
    prefix="/requests",
    tags=["Bids"], # 歸類到同一個 Tag
    dependencies=[Depends(get_current_user)]
)

@request_bid_router.post(
    "/{request_id}/bids",
    response_model=BidOut,
    status_code=status.HTTP_201_CREATED
)
async def submit_bid(
    request_id: str,
    bid_data: BidCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    開發者對需求投標。每位開發者對同一需求只能投標一次，且須在投標期間內。
    """
    return await BidService(db).submit_bid(request_id, current_user, bid_data)

@request_bid_router.get("/{request_id}/bids", response_model=List[BidOutWithDeveloper])
async def list_bids_for_request(
    request_id: str,
    db: AsyncSession = Depends(get_db)
):
    """
    需求的所有投標 (先投的在前)，附帶開發者資訊
    """
    return await BidService(db).list_bids_for_request(request_id)

@request_bid_router.get("/{request_id}/bids/me", response_model=BidOut)
async def get_my_bid_for_request(
    request_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await BidService(db).get_my_bid_for_request(request_id, current_user)

# -----------------------------------------------------------------
# /bids
# -----------------------------------------------------------------
@router.get("/my", response_model=List[BidOutWithRequest])
async def list_my_bids(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    (開發者) 我的投標列表 (新的在前)
    """
    return await BidService(db).list_my_bids(current_user)

@router.put("/{bid_id}", response_model=BidOut)
async def revise_bid(
    bid_id: str,
    bid_data: BidUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    (開發者) 修改尚未被選中的投標
    """
    return await BidService(db).revise_bid(bid_id, current_user, bid_data)

@router.delete("/{bid_id}", status_code=status.HTTP_204_NO_CONTENT)
async def withdraw_bid(
    bid_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    (開發者) 撤回尚未被選中的投標
    """
    await BidService(db).withdraw_bid(bid_id, current_user)

@router.post("/{bid_id}/select", response_model=RequestOut)
async def select_winning_bid(
    bid_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    (委託人) 選標。同一需求只會有一個得標投標，重複或同時選標會得到 409。
    """
    return await AwardService(db).select_winning_bid(bid_id, current_user)
