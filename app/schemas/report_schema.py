# app/schemas/report_schema.py

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime

from app.models.report import ReportStatusEnum, ReportTargetTypeEnum

class ReportCreate(BaseModel):
    target_type: ReportTargetTypeEnum
    target_id: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None

# (管理員) 處理檢舉：只能改成 resolved 或 dismissed
class ReportResolve(BaseModel):
    status: ReportStatusEnum

class ReportOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    report_id: str
    reporter_id: str
    target_type: ReportTargetTypeEnum
    target_id: str
    reason: str
    description: Optional[str] = None
    status: ReportStatusEnum
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime
