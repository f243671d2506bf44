# models/user.py
from sqlalchemy import Column, String, Boolean, Enum, TEXT, TIMESTAMP, CHAR, func
from app.core.database import Base
import enum
from sqlalchemy.orm import relationship

# 對應 SQL 中的 ENUM 型別
class UserRoleEnum(str, enum.Enum):
    client = "client"        # 委託人 (刊登需求)
    developer = "developer"  # 開發者 (投標)
    admin = "admin"          # 系統管理員 (檢舉處理)

class User(Base):
    __tablename__ = "users"

    # 基本欄位
    user_id = Column(CHAR(36), primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(Enum(UserRoleEnum, values_callable=lambda obj: [e.value for e in obj]), nullable=False)
    is_active = Column(Boolean, default=True)

    # 個人資料 (公開顯示)
    name = Column(String(100))
    bio = Column(TEXT)
    portfolio_url = Column(String(500))

    created_at = Column(TIMESTAMP, server_default=func.now())

    # 關聯設定
    requests_owned = relationship(
        "Request",
        back_populates="client",
    )

    bids = relationship(
        "Bid",
        back_populates="developer",
    )

    @property
    def display_name(self) -> str:
        """沒有填名字時，以 email 前綴代替"""
        return self.name or self.email.split("@")[0]
