# app/core/payment_gateway.py
# Toss Payments 付款確認 API 客戶端
import base64
import logging
from typing import Optional

import httpx

from app.core.config import settings
from app.core.exceptions import GatewayError

logger = logging.getLogger(__name__)


class TossPaymentsClient:
    """
    呼叫 Toss Payments 的 /payments/confirm。

    (重要) amount 一律由呼叫端傳入「資料庫中的金額」，
    絕不使用前端 redirect URL 上的金額。
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret_key = settings.TOSS_SECRET_KEY if secret_key is None else secret_key
        self.base_url = base_url or settings.TOSS_API_BASE_URL
        self.timeout = timeout or settings.PAYMENT_GATEWAY_TIMEOUT_SECONDS
        self._transport = transport # 測試時注入 httpx.MockTransport

    def _auth_header(self) -> str:
        # Basic 認證: base64("secret_key:")
        token = base64.b64encode(f"{self.secret_key}:".encode()).decode()
        return f"Basic {token}"

    async def confirm_payment(self, payment_key: str, order_id: str, amount: int) -> dict:
        """
        確認付款。成功回傳金流的回應內容，失敗拋出 GatewayError (帶金流的錯誤訊息)
        """
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    "/payments/confirm",
                    json={"paymentKey": payment_key, "orderId": order_id, "amount": amount},
                    headers={"Authorization": self._auth_header()},
                )
        except httpx.HTTPError as e:
            logger.error(f"金流連線失敗 order_id={order_id}: {e}", exc_info=True)
            raise GatewayError("付款處理中發生錯誤，請稍後再試")

        if not response.is_success:
            try:
                error_data = response.json()
            except ValueError:
                error_data = {}
            message = error_data.get("message") or "付款確認失敗"
            logger.warning(
                f"金流拒絕付款確認 order_id={order_id} status={response.status_code} code={error_data.get('code')}"
            )
            raise GatewayError(message)

        return response.json()


# FastAPI Dependency (測試可用 dependency_overrides 替換)
def get_payment_gateway() -> TossPaymentsClient:
    return TossPaymentsClient()
