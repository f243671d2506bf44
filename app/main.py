import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.core.config import settings
from app.core.database import init_db
from app.core.exceptions import MarketplaceError
from app.routers import (
    auth_router, user_router,
    request_router, payment_router,
    review_router, report_router, bookmark_router
)

# 單獨匯入 "bid_router.py" 檔案中的 *兩個* router
from app.routers.bid_router import (
    router as bid_main_router,
    request_bid_router
)

from app.routers import notification_router
from app.routers import message_router

# --- 匯入所有 Model 檔案 ---
# 都在應用程式啟動時被 SQLAlchemy 註冊。
from app.models import user
from app.models import request
from app.models import bid
from app.models import payment
from app.models import notification
from app.models import message
from app.models import review
from app.models import report
from app.models import bookmark


# 設定基礎日誌
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # 啟動時建立尚未存在的資料表
    await init_db()
    logger.info("Database tables ready")
    yield

app = FastAPI(title="DevNyang API", lifespan=lifespan)

# --- 設定 CORS (跨來源資源共用) ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"], # 允許所有 HTTP 方法
    allow_headers=["*"], # 允許所有 HTTP 標頭
)

# --- 業務錯誤統一格式: {"error": "Conflict", "detail": "..."} ---
@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": type(exc).__name__, "detail": exc.detail},
        headers=exc.headers,
    )

# --- 根路徑 ---
@app.get("/")
def read_root():
    return {"status": "success", "message": "Backend is running!"}

# --- 載入 API 路由 ---
app.include_router(auth_router.router)
app.include_router(user_router.router)
app.include_router(request_router.router)
app.include_router(request_bid_router)
app.include_router(bid_main_router)
app.include_router(payment_router.router)
app.include_router(review_router.router)
app.include_router(report_router.router)
app.include_router(bookmark_router.router)
app.include_router(notification_router.router)
app.include_router(message_router.router)
