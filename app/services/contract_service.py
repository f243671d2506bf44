# app/services/contract_service.py

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import Conflict, Forbidden, NotFound
from app.models.bid import Bid
from app.models.request import Request, RequestStatusEnum
from app.models.user import User
from app.repositories.bid_repo import BidRepository
from app.repositories.request_repo import RequestRepository
from app.schemas.contract_schema import ContractOut
from app.utils.clock import format_won, utcnow


class ContractService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.request_repo = RequestRepository(db)
        self.bid_repo = BidRepository(db)

    def _generate_contract_template(
        self,
        request: Request,
        bid: Bid,
        client: User,
        developer: User
    ) -> str:
        deadline_str = request.deadline.strftime('%Y-%m-%d') if request.deadline else "未指定"
        days_str = f"{bid.estimated_days} 天" if bid.estimated_days else "未指定"
        template = f"""
# 開發委託合約書

## 一、 委託內容
* **專案名稱**: {request.title}
* **需求編號**: {request.request_id}
* **合約金額**: {format_won(bid.price)}
* **預計開發期間**: {days_str}
* **完成期限**: {deadline_str}

## 二、 雙方資訊
* **甲方 (委託人)**: {client.display_name}
* **乙方 (開發者)**: {developer.display_name}

## 三、 工作內容
{request.description}

## 四、 付款方式
甲方於合約成立後將合約金額支付至平台託管，專案完成並經甲方確認後，由平台撥款給乙方。

## 五、 其他
本合約未規定之事項，由雙方協議決定。

---
(本合約由系統於 {utcnow().strftime('%Y-%m-%d %H:%M')} (UTC) 依需求刊登日 {request.created_at.strftime('%Y-%m-%d')} 的內容自動產生)
"""
        return template.strip()

    async def get_contract(self, request_id: str, user: User) -> ContractOut:
        """
        已選標 (或已完成) 的需求才有合約；只有委託人與得標開發者可以查看
        """
        request = await self.request_repo.get_request_by_id(request_id)
        if request is None:
            raise NotFound("找不到此需求")
        if request.status not in (RequestStatusEnum.awarded, RequestStatusEnum.completed):
            raise Conflict("只有已選標的需求可以產生合約")

        bid = await self.bid_repo.get_bid_by_id(request.awarded_bid_id)
        if bid is None:
            raise NotFound("找不到得標資訊")

        if user.user_id not in (request.client_id, bid.developer_id):
            raise Forbidden("無權查看此合約")

        client = request.client
        developer = bid.developer
        return ContractOut(
            request_id=request.request_id,
            request_title=request.title,
            request_description=request.description,
            client_id=client.user_id,
            client_name=client.display_name,
            developer_id=developer.user_id,
            developer_name=developer.display_name,
            price=bid.price,
            estimated_days=bid.estimated_days,
            deadline=request.deadline,
            created_at=request.created_at,
            content=self._generate_contract_template(request, bid, client, developer),
        )
