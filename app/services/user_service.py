# app/services/user_service.py
from sqlalchemy.ext.asyncio import AsyncSession
from app.repositories.user_repo import UserRepository
from app.models.user import User
from app.schemas.user_schema import ProfileUpdate

class UserService:
    def __init__(self, db: AsyncSession):
        self.user_repo = UserRepository(db)

    async def get_profile(self, current_user: User) -> User:
        return current_user

    async def update_profile(self, current_user: User, profile_data: ProfileUpdate) -> User:
        """
        更新名稱、角色、自我介紹與作品集網址 (admin 不可透過此處變更角色)
        """
        update_data = profile_data.model_dump()
        if not update_data.get("bio"):
            update_data["bio"] = None
        if not update_data.get("portfolio_url"):
            update_data["portfolio_url"] = None
        return await self.user_repo.update_user(current_user, update_data)
