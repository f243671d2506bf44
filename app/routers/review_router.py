# app/routers/review_router.py

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import get_current_user, require_admin
from app.models.user import User
from app.services.review_service import ReviewService
from app.schemas.review_schema import ReviewCreate, ReviewOut, ReviewVisibilityUpdate

router = APIRouter(
    prefix="/reviews",
    tags=["Reviews"],
    dependencies=[Depends(get_current_user)]
)

@router.post("", response_model=ReviewOut, status_code=status.HTTP_201_CREATED)
async def submit_review(
    review_data: ReviewCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    委託人與得標開發者互相評價 (每個需求每人一次，1~5 分)
    """
    return await ReviewService(db).submit_review(review_data, current_user)

@router.patch("/{review_id}/visibility", response_model=ReviewOut)
async def set_review_visibility(
    review_id: str,
    visibility: ReviewVisibilityUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """
    (管理員) 隱藏或重新公開評價
    """
    return await ReviewService(db).set_review_visibility(review_id, admin, visibility.is_visible)
