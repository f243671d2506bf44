# app/services/auth_service.py
import logging
import uuid
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from app.repositories.user_repo import UserRepository
from app.core.security import verify_password, create_access_token, get_password_hash
from app.core.exceptions import Conflict, Unauthenticated
from app.models.user import User
from app.schemas.user_schema import UserCreate

logger = logging.getLogger(__name__)

class AuthService:
    def __init__(self, db: AsyncSession):
        self.user_repo = UserRepository(db)

    async def authenticate_user(self, email: str, password: str) -> User:
        """
        驗證使用者帳號密碼。
        成功回傳 User 物件，失敗拋出 Unauthenticated。
        """
        user = await self.user_repo.get_user_by_email(email)

        # 1. 檢查使用者是否存在、是否被停權
        # 2. 檢查密碼是否正確
        if (
            not user
            or not user.is_active
            or not verify_password(plain_password=password, hashed_password=user.password_hash)
        ):
            raise Unauthenticated("不正確的帳號或密碼", headers={"WWW-Authenticate": "Bearer"})

        return user

    async def register_user(self, user_create: UserCreate) -> User:
        """
        處理使用者註冊
        """
        # 1. 檢查 Email 是否已被註冊
        if await self.user_repo.get_user_by_email(user_create.email):
            raise Conflict("此 Email 已經被註冊")

        # 2. 建立 User ORM 模型 (密碼只存雜湊值)
        new_user = User(
            user_id=str(uuid.uuid4()),
            email=user_create.email,
            password_hash=get_password_hash(user_create.password),
            role=user_create.role,
            name=user_create.name,
        )

        # 3. 儲存；同時註冊的競態由 unique 約束擋下
        try:
            created_user = await self.user_repo.create_user(new_user)
        except IntegrityError:
            raise Conflict("此 Email 已經被註冊")

        logger.info(f"User registered: {created_user.user_id} ({created_user.role.value})")
        return created_user

    def create_login_token(self, user: User) -> str:
        """
        為指定使用者建立 access token
        """
        return create_access_token(
            data={
                "sub": user.email,
                "user_id": str(user.user_id),
                "role": user.role.value # 確保存入的是字串
            }
        )
