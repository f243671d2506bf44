import base64
import json

import httpx
import pytest

from app.core.email import EmailSender, awarded_email, new_bid_email, project_completed_email
from app.core.exceptions import GatewayError
from app.core.payment_gateway import TossPaymentsClient
from app.utils.clock import format_won


def test_format_won():
    assert format_won(900000) == "KRW 900,000"
    assert format_won(0) == "KRW 0"


# --- Toss Payments ---

async def test_confirm_payment_sends_stored_amount():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"status": "DONE", "totalAmount": 900000})

    client = TossPaymentsClient(
        secret_key="test_sk",
        base_url="https://gateway.test/v1",
        transport=httpx.MockTransport(handler),
    )
    result = await client.confirm_payment("pay_key", "ORDER_1_abcdef", 900000)

    assert result["status"] == "DONE"
    assert captured["url"] == "https://gateway.test/v1/payments/confirm"
    assert captured["auth"] == "Basic " + base64.b64encode(b"test_sk:").decode()
    assert captured["body"] == {"paymentKey": "pay_key", "orderId": "ORDER_1_abcdef", "amount": 900000}


async def test_confirm_payment_rejected_by_gateway():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"code": "REJECT_CARD_PAYMENT", "message": "한도초과"})

    client = TossPaymentsClient(secret_key="sk", transport=httpx.MockTransport(handler))

    with pytest.raises(GatewayError) as exc_info:
        await client.confirm_payment("pay_key", "ORDER_1_abcdef", 1000)
    assert exc_info.value.status_code == 502
    assert exc_info.value.detail == "한도초과"


async def test_confirm_payment_network_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = TossPaymentsClient(secret_key="sk", transport=httpx.MockTransport(handler))

    with pytest.raises(GatewayError):
        await client.confirm_payment("pay_key", "ORDER_1_abcdef", 1000)


# --- Email ---

async def test_email_sender_posts_to_resend():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["auth"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "email_1"})

    sender = EmailSender(api_key="re_test", from_email="noreply@test.dev", transport=httpx.MockTransport(handler))
    subject, html = new_bid_email("Shopping mall", "Lee", 900000, "req-1")

    assert await sender.send("client@example.com", subject, html) is True
    assert captured["auth"] == "Bearer re_test"
    assert captured["body"]["to"] == "client@example.com"
    assert "KRW 900,000" in captured["body"]["html"]
    assert "/requests/req-1" in captured["body"]["html"]


async def test_email_sender_never_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="internal error")

    sender = EmailSender(api_key="re_test", transport=httpx.MockTransport(handler))
    subject, html = project_completed_email("Shopping mall", 900000, "req-1")

    assert await sender.send("dev@example.com", subject, html) is False


async def test_email_sender_without_api_key_skips():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("should not be called")

    sender = EmailSender(api_key="", transport=httpx.MockTransport(handler))
    assert await sender.send("dev@example.com", "s", "h") is False


def test_email_templates_escape_user_input():
    subject, html = new_bid_email("<script>evil()</script> site", "<img src=x onerror=alert(1)>", 900000, "req-1")

    assert "<script>" not in html
    assert "<img" not in html
    assert "&lt;script&gt;evil()&lt;/script&gt; site" in html
    assert "&lt;img src=x onerror=alert(1)&gt;" in html

    _, html = awarded_email("<b>bold</b>", 900000, "req-1")
    assert "<b>bold</b>" not in html
    assert "&lt;b&gt;bold&lt;/b&gt;" in html
