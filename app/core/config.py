# app/core/config.py
# 應用程式設定 (資料庫連線字串、JWT 秘鑰、金流與寄信金鑰等)
from typing import List, Optional
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # 資料庫設定
    DATABASE_URL: str
    # (可選) 設為 True 會在 console 印出 SQL 語句
    DB_ECHO: bool = False

    # JWT 設定
    JWT_SECRET_KEY: str
    # JWT 演算法
    JWT_ALGORITHM: str = "HS256"
    # 存取令牌過期時間（分鐘）
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # 投標期間 (需求刊登後固定 48 小時，不可延長)
    BIDDING_WINDOW_HOURS: int = 48

    # Toss Payments 金流
    TOSS_SECRET_KEY: str = ""
    TOSS_API_BASE_URL: str = "https://api.tosspayments.com/v1"
    PAYMENT_GATEWAY_TIMEOUT_SECONDS: float = 10.0

    # Resend 寄信 (未設定 API key 時略過寄信)
    RESEND_API_KEY: Optional[str] = None
    RESEND_API_URL: str = "https://api.resend.com/emails"
    RESEND_FROM_EMAIL: str = "noreply@devnyang.com"

    # 前端網址 (通知與信件中的連結)
    SITE_URL: str = "https://devnyang.vercel.app"

    CORS_ORIGINS: List[str] = ["*"]

    # 環境變數檔案
    class Config:
        env_file = ".env"

# 建立設定實例
settings = Settings()
