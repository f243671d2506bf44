# app/routers/auth_router.py
import logging
from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.database import get_db
from app.services.auth_service import AuthService
from app.schemas.user_schema import Token, UserCreate, UserOut


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth", # 路由前綴
    tags=["Auth"]    # API 文件分類標籤
)


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def register_new_user(
    user_data: UserCreate, # Request Body 會被 Pydantic 驗證
    db: AsyncSession = Depends(get_db)
):
    """
    註冊新使用者 (委託人 / 開發者)

    - 密碼需至少8碼，且包含英文和數字。
    """
    return await AuthService(db).register_user(user_data)


@router.post("/token", response_model=Token)
async def login_for_access_token(
    # (重要) OAuth2PasswordRequestForm 只接受 form-data: username=...&password=...
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db)
):
    """
    提供帳號 (username 欄位傳 email) 和密碼以取得 Access Token
    """
    auth_service = AuthService(db)

    user = await auth_service.authenticate_user(
        email=form_data.username,
        password=form_data.password
    )
    logger.info(f"User logged in: {user.user_id}")

    return Token(
        access_token=auth_service.create_login_token(user),
        token_type="bearer",
        user_id=user.user_id,
        role=user.role,
    )
