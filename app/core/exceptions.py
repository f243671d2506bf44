# app/core/exceptions.py
# 業務規則錯誤的型別 (Service 層拋出，FastAPI 轉成 JSON 回應)
from typing import Dict, Optional
from fastapi import HTTPException, status


class MarketplaceError(HTTPException):
    """所有業務錯誤的基底類別，子類別決定 HTTP 狀態碼"""
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str, headers: Optional[Dict[str, str]] = None):
        super().__init__(status_code=type(self).status_code, detail=detail, headers=headers)


class Unauthenticated(MarketplaceError):
    """未登入或憑證無效"""
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(MarketplaceError):
    """已登入，但無權操作此資源"""
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(MarketplaceError):
    """狀態機前置條件不成立 (重複投標、已過期、已得標、金額不符...)"""
    status_code = status.HTTP_409_CONFLICT


class Invalid(MarketplaceError):
    """輸入格式錯誤 (金額非正數、預算區間錯誤、評分超出 1~5)"""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class GatewayError(MarketplaceError):
    """外部金流拒絕或無法連線，付款維持 pending 可重試"""
    status_code = status.HTTP_502_BAD_GATEWAY
