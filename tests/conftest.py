import os
import sys
import uuid
from datetime import timedelta

# 測試用設定：必須在匯入 app 之前設定 (Settings 在匯入時讀取環境變數)
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ["RESEND_API_KEY"] = ""

# Ensure backend package is on sys.path for imports during tests
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
import pytest_asyncio
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from app.core.database import Base
from app.models.user import User, UserRoleEnum
from app.models.request import Request
from app.models.bid import Bid
from app.models.payment import Payment
from app.models.notification import Notification
from app.models.message import ChatRoom, Message
from app.models.review import Review
from app.models.report import Report
from app.models.bookmark import Bookmark
from app.repositories.user_repo import UserRepository
from app.schemas.bid_schema import BidCreate
from app.schemas.request_schema import RequestCreate
from app.services.bid_service import BidService
from app.services.notification_service import NotificationService
from app.services.request_service import RequestService
from app.utils.clock import utcnow


class RecordingEmailSender:
    def __init__(self):
        self.sent = []

    async def send(self, to, subject, html):
        self.sent.append((to, subject, html))
        return True


class FailingEmailSender:
    async def send(self, to, subject, html):
        raise RuntimeError("mail server down")


class StubGateway:
    """記錄呼叫內容的假金流；設定 error 時改為拋出該例外"""

    def __init__(self, error=None):
        self.calls = []
        self.error = error

    async def confirm_payment(self, payment_key, order_id, amount):
        self.calls.append((payment_key, order_id, amount))
        if self.error is not None:
            raise self.error
        return {"paymentKey": payment_key, "orderId": order_id, "totalAmount": amount, "status": "DONE"}


@pytest_asyncio.fixture
async def engine(tmp_path):
    # 使用檔案型 SQLite：通知等附帶動作會開獨立的 session，需要看到同一個資料庫
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def mailer():
    return RecordingEmailSender()


@pytest.fixture
def failing_mailer():
    return FailingEmailSender()


@pytest.fixture
def gateway():
    return StubGateway()


@pytest.fixture
def notifier(db, mailer):
    return NotificationService(db, email_sender=mailer)


@pytest.fixture
def make_user(db):
    async def _make_user(role=UserRoleEnum.client, name=None, email=None, is_active=True):
        user = User(
            user_id=str(uuid.uuid4()),
            email=email or f"{uuid.uuid4().hex[:10]}@example.com",
            password_hash="not-a-real-hash",
            role=role,
            name=name,
            is_active=is_active,
        )
        return await UserRepository(db).create_user(user)
    return _make_user


@pytest.fixture
def make_request(db):
    async def _make_request(client, title="Build a shopping mall", budget_min=500000, budget_max=1000000, expired=False):
        request = await RequestService(db).create_request(
            RequestCreate(
                title=title,
                description="Need a Django backend with payment integration and admin pages.",
                budget_min=budget_min,
                budget_max=budget_max,
            ),
            client,
        )
        if expired:
            await db.execute(
                update(Request)
                .where(Request.request_id == request.request_id)
                .values(expires_at=utcnow() - timedelta(hours=1))
            )
            await db.commit()
            request = await RequestService(db).get_request(request.request_id)
        return request
    return _make_request


@pytest.fixture
def place_bid(db, notifier):
    async def _place_bid(request, developer, price=900000, estimated_days=30, message=None):
        return await BidService(db, notification_service=notifier).submit_bid(
            request.request_id,
            developer,
            BidCreate(price=price, estimated_days=estimated_days, message=message),
        )
    return _place_bid
