# app/core/email.py
# 寄信 (Resend HTTP API) 與信件範本
import logging
from html import escape
from typing import Optional

import httpx

from app.core.config import settings
from app.utils.clock import format_won

logger = logging.getLogger(__name__)


class EmailSender:
    """
    fire-and-forget 寄信：任何失敗只記 log 並回傳 False，不拋出例外
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        from_email: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.RESEND_API_KEY
        self.from_email = from_email or settings.RESEND_FROM_EMAIL
        self._transport = transport

    async def send(self, to: str, subject: str, html: str) -> bool:
        if not self.api_key:
            logger.info(f"[Email] RESEND_API_KEY 未設定，略過寄信: {subject}")
            return False

        try:
            async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
                response = await client.post(
                    settings.RESEND_API_URL,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "from": f"DevNyang <{self.from_email}>",
                        "to": to,
                        "subject": subject,
                        "html": html,
                    },
                )
        except httpx.HTTPError as e:
            logger.error(f"[Email] 寄信失敗 to={to}: {e}", exc_info=True)
            return False

        if not response.is_success:
            logger.error(f"[Email] 寄信失敗 to={to} status={response.status_code}: {response.text}")
            return False

        return True


def _layout(heading: str, body: str, link_path: str, button: str) -> str:
    return (
        f"<div style=\"font-family: sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;\">"
        f"<h2>{heading}</h2>{body}"
        f"<a href=\"{settings.SITE_URL}{link_path}\">{button}</a>"
        f"<p style=\"color: #71717a; font-size: 12px;\">此信件由 DevNyang 系統自動寄出。</p>"
        f"</div>"
    )


# --- 信件範本：回傳 (subject, html) ---
# 使用者輸入的標題與名稱放進 HTML 前一律 escape

def new_bid_email(request_title: str, developer_name: str, price: int, request_id: str):
    subject = f"[DevNyang] 「{request_title}」收到新的投標"
    html = _layout(
        "新投標通知",
        f"<p><strong>{escape(developer_name)}</strong> 對「{escape(request_title)}」提出了 {format_won(price)} 的報價。</p>",
        f"/requests/{request_id}",
        "查看投標",
    )
    return subject, html


def awarded_email(request_title: str, price: int, request_id: str):
    subject = f"[DevNyang] 恭喜！您已得標「{request_title}」"
    html = _layout(
        "得標通知",
        f"<p>您對「{escape(request_title)}」的投標已被選中，合約金額 {format_won(price)}。</p>"
        f"<p>請透過聊天室與委託人討論專案細節。</p>",
        f"/requests/{request_id}",
        "查看專案",
    )
    return subject, html


def payment_received_email(request_title: str, amount: int, request_id: str):
    subject = f"[DevNyang] 「{request_title}」已完成付款"
    html = _layout(
        "付款完成通知",
        f"<p>{format_won(amount)} 已存入平台託管 (escrow)，專案完成後即會撥款。</p>",
        f"/requests/{request_id}",
        "查看專案",
    )
    return subject, html


def project_completed_email(request_title: str, amount: int, request_id: str):
    subject = f"[DevNyang] 「{request_title}」專案已完成"
    html = _layout(
        "專案完成",
        f"<p>{format_won(amount)} 已完成撥款，請互相留下評價！</p>",
        f"/requests/{request_id}",
        "撰寫評價",
    )
    return subject, html
