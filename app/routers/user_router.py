# app/routers/user_router.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from app.core.database import get_db
from app.core.security import get_current_user
from app.models.user import User
from app.schemas.user_schema import ProfileUpdate, UserOut
from app.schemas.review_schema import ReviewOut
from app.services.user_service import UserService
from app.services.review_service import ReviewService

router = APIRouter(
    prefix="/users",
    tags=["Users"],
    dependencies=[Depends(get_current_user)] # (重要) 整個路由都需要登入
)

@router.get("/me", response_model=UserOut)
async def read_users_me(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    獲取當前登入使用者的基本資料 (不含密碼)
    """
    return await UserService(db).get_profile(current_user)

@router.put("/me", response_model=UserOut)
async def update_users_me(
    profile_data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    更新名稱、角色 (client / developer)、自我介紹、作品集網址
    """
    return await UserService(db).update_profile(current_user, profile_data)

@router.get("/{user_id}/reviews", response_model=List[ReviewOut])
async def list_reviews_for_user(
    user_id: str,
    db: AsyncSession = Depends(get_db)
):
    """
    某位使用者收到的公開評價
    """
    return await ReviewService(db).list_reviews_for_user(user_id)
