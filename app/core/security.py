# app/core/security.py
# 負責密碼雜湊與 JWT 權杖的產生與驗證
from datetime import datetime, timedelta, timezone
from passlib.context import CryptContext
from jose import JWTError, jwt
from fastapi import Depends, Query, status, WebSocket, WebSocketDisconnect
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import Forbidden, Unauthenticated
from app.schemas.user_schema import TokenData
from app.repositories.user_repo import UserRepository
from app.models.user import User, UserRoleEnum

# 1. 密碼雜湊設定 (Bcrypt)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# 2. (重要) 定義 Token 從哪裡來 (Authorization Header)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """驗證明文密碼是否與雜湊值相符"""
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    """產生密碼的雜湊值"""
    return pwd_context.hash(password)

# 3. JWT 權杖產生與驗證
def create_access_token(data: dict) -> str:
    """
    根據傳入的 data (e.g., user_id) 產生 JWT access token
    """
    to_encode = data.copy() # 避免修改原始資料
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})

    return jwt.encode(
        to_encode,
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM
    )

def verify_access_token(token: str) -> TokenData | None:
    """
    驗證 JWT，回傳 TokenData (Pydantic Model) 或 None
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError:
        return None

    user_id = payload.get("user_id")
    role = payload.get("role")
    if user_id is None or role is None:
        return None

    return TokenData(user_id=user_id, role=role)

async def _load_active_user(token: str, db: AsyncSession) -> User:
    token_data = verify_access_token(token)
    if token_data is None:
        raise Unauthenticated("無法驗證憑證", headers={"WWW-Authenticate": "Bearer"})

    user = await UserRepository(db).get_user_by_id(user_id=token_data.user_id)
    if user is None:
        raise Unauthenticated("無法驗證憑證", headers={"WWW-Authenticate": "Bearer"})

    if not user.is_active:
        raise Forbidden("此帳號已被停權")

    return user

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    FastAPI 依賴項：驗證 Token 並回傳 User Model (用於 REST API)
    """
    return await _load_active_user(token, db)

async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """
    FastAPI 依賴項：僅限系統管理員 (檢舉處理、評價隱藏)
    """
    if current_user.role != UserRoleEnum.admin:
        raise Forbidden("僅限系統管理員操作")
    return current_user

async def get_current_user_from_websocket_token(
    websocket: WebSocket,
    token: str = Query(...), # 從 Query 參數 (?token=...) 讀取
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    WebSocket 專用的 Token 驗證依賴
    """
    try:
        return await _load_active_user(token, db)
    except (Unauthenticated, Forbidden) as e:
        raise WebSocketDisconnect(
            code=status.WS_1008_POLICY_VIOLATION,
            reason=e.detail
        )
