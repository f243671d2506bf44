# app/schemas/user_schema.py
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, field_validator, ConfigDict
import re
from app.models.user import UserRoleEnum
from typing import Optional

# 可自行選擇的角色 (admin 只能由系統指派)
SELF_SELECTABLE_ROLES = (UserRoleEnum.client, UserRoleEnum.developer)

def _check_selectable_role(v: UserRoleEnum) -> UserRoleEnum:
    if v not in SELF_SELECTABLE_ROLES:
        raise ValueError('角色只能是 client 或 developer')
    return v

# 登入請求的格式
class UserLogin(BaseModel):
    email: EmailStr
    password: str

# Token 回應的格式
class Token(BaseModel):
    access_token: str
    token_type: str
    # 前端登入後依角色導向 (委託人 -> 我的需求, 開發者 -> 需求列表)
    user_id: str
    role: UserRoleEnum

# Token 內的資料
class TokenData(BaseModel):
    user_id: str
    role: str


# 註冊請求 Body
class UserCreate(BaseModel):
    email: EmailStr
    # 密碼要求英數混合
    password: str = Field(..., min_length=8)
    role: UserRoleEnum
    name: Optional[str] = Field(None, max_length=100)

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        """
        驗證密碼是否至少8碼且包含英文和數字
        """
        if not re.search(r'(?=.*[a-zA-Z])(?=.*[0-9])', v):
            raise ValueError('密碼必須包含英文和數字')
        if len(v) < 8:
            raise ValueError('密碼長度至少為 8 個字元')
        return v

    @field_validator('role')
    @classmethod
    def validate_role(cls, v: UserRoleEnum) -> UserRoleEnum:
        return _check_selectable_role(v)


# 個人資料更新
class ProfileUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    role: UserRoleEnum
    bio: Optional[str] = None
    portfolio_url: Optional[str] = Field(None, max_length=500)

    @field_validator('name')
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('請輸入名稱')
        return v

    @field_validator('role')
    @classmethod
    def validate_role(cls, v: UserRoleEnum) -> UserRoleEnum:
        return _check_selectable_role(v)


# 註冊/查詢自己的安全回應 (不含密碼)
class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    email: EmailStr
    role: UserRoleEnum
    is_active: bool
    name: Optional[str] = None
    bio: Optional[str] = None
    portfolio_url: Optional[str] = None
    created_at: Optional[datetime] = None


# 在投標、聊天室、評價中顯示對方的精簡資料
class UserBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    display_name: str
    role: UserRoleEnum
