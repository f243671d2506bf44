# app/services/request_service.py
import logging
import uuid
from datetime import timedelta
from typing import List
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import Conflict, Forbidden, Invalid, NotFound
from app.models.user import User
from app.models.request import Request, RequestStatusEnum
from app.repositories.request_repo import RequestRepository
from app.schemas.request_schema import RequestCreate, RequestUpdate
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

TITLE_MIN_LENGTH = 5
DESCRIPTION_MIN_LENGTH = 20


def validate_request_fields(title: str, description: str, budget_min: int, budget_max: int) -> None:
    """需求內容的檢查 (新增與修改共用)，不符合時拋出 Invalid"""
    if len(title.strip()) < TITLE_MIN_LENGTH:
        raise Invalid(f"標題至少需要 {TITLE_MIN_LENGTH} 個字")
    if len(description.strip()) < DESCRIPTION_MIN_LENGTH:
        raise Invalid(f"說明至少需要 {DESCRIPTION_MIN_LENGTH} 個字")
    if budget_min <= 0 or budget_max <= 0:
        raise Invalid("預算必須大於 0")
    if budget_min > budget_max:
        raise Invalid("最低預算不可高於最高預算")


class RequestService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.request_repo = RequestRepository(db)

    async def get_request(self, request_id: str) -> Request:
        request = await self.request_repo.get_request_by_id(request_id)
        if request is None:
            raise NotFound("找不到此需求")
        return request

    async def _get_owned_request(self, request_id: str, user: User) -> Request:
        request = await self.get_request(request_id)
        if request.client_id != user.user_id:
            raise Forbidden("您不是此需求的委託人")
        return request

    async def create_request(self, data: RequestCreate, user: User) -> Request:
        """
        刊登新需求。投標期限 = 建立時間 + 投標期間，之後不會再延長。
        """
        validate_request_fields(data.title, data.description, data.budget_min, data.budget_max)

        created_at = utcnow()
        new_request = Request(
            request_id=str(uuid.uuid4()),
            client_id=user.user_id,
            title=data.title.strip(),
            description=data.description.strip(),
            budget_min=data.budget_min,
            budget_max=data.budget_max,
            deadline=data.deadline,
            status=RequestStatusEnum.open,
            created_at=created_at,
            expires_at=created_at + timedelta(hours=settings.BIDDING_WINDOW_HOURS),
        )
        request = await self.request_repo.create_request(new_request)
        logger.info(f"Request {request.request_id} posted by {user.user_id}, bidding closes at {request.expires_at}")
        return request

    async def update_request(self, request_id: str, data: RequestUpdate, user: User) -> Request:
        """
        (委託人) 修改 open 狀態的需求內容；expires_at 不會變動
        """
        request = await self._get_owned_request(request_id, user)
        if request.status != RequestStatusEnum.open:
            raise Conflict("只有投標中的需求可以修改")

        validate_request_fields(data.title, data.description, data.budget_min, data.budget_max)

        updated = await self.request_repo.update_request_if_open(
            request_id,
            user.user_id,
            {
                "title": data.title.strip(),
                "description": data.description.strip(),
                "budget_min": data.budget_min,
                "budget_max": data.budget_max,
                "deadline": data.deadline,
            },
        )
        if not updated:
            await self.db.refresh(user)
            raise Conflict("只有投標中的需求可以修改")
        return await self.get_request(request_id)

    async def cancel_request(self, request_id: str, user: User) -> Request:
        request = await self._get_owned_request(request_id, user)
        if request.status != RequestStatusEnum.open:
            raise Conflict("只有投標中的需求可以取消")

        if not await self.request_repo.cancel_request(request_id, user.user_id):
            # 在檢查與更新之間被選標了
            await self.db.refresh(user)
            raise Conflict("只有投標中的需求可以取消")

        logger.info(f"Request {request_id} cancelled by {user.user_id}")
        return await self.get_request(request_id)

    async def list_open_requests(self) -> List[Request]:
        return await self.request_repo.list_open_requests(utcnow())

    async def list_my_requests(self, user: User) -> List[Request]:
        return await self.request_repo.list_requests_by_client(user.user_id)
