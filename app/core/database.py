from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from app.core.config import settings

# 建立非同步引擎
engine = create_async_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True, # 每次從連線池取連線前，先 PING 一次，確保連線有效
    echo=settings.DB_ECHO,
)

# 建立非同步 Session
AsyncSessionLocal = sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# 建立 ORM Model 基底類別
Base = declarative_base()

# (重要) 取得 DB Session 的 Dependency
async def get_db() -> AsyncSession:
    """FastAPI Dependency: 取得非同步資料庫 session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()

def session_factory_for(db: AsyncSession) -> sessionmaker:
    """
    在同一個引擎上建立獨立的 session factory。

    通知、寄信、聊天室建立等「附帶動作」必須使用自己的 session，
    它們失敗時的 rollback 不會影響 (也不會 expire) 主交易的 session。
    """
    return sessionmaker(
        bind=db.bind,
        class_=AsyncSession,
        expire_on_commit=False,
    )

async def init_db() -> None:
    """建立所有資料表 (開發環境使用，正式環境請用 migration)"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
