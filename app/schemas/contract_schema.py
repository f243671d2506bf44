# app/schemas/contract_schema.py

from pydantic import BaseModel
from typing import Optional
from datetime import datetime

# 合約內容由已選標的需求與得標投標組成 (不另外存表)
class ContractOut(BaseModel):
    request_id: str
    request_title: str
    request_description: str
    client_id: str
    client_name: str
    developer_id: str
    developer_name: str
    price: int
    estimated_days: Optional[int] = None
    deadline: Optional[datetime] = None
    created_at: datetime
    # 純文字合約草案 (Markdown)
    content: str
