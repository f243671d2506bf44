# app/routers/report_router.py

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.core.database import get_db
from app.core.security import get_current_user, require_admin
from app.models.report import ReportStatusEnum
from app.models.user import User
from app.services.report_service import ReportService
from app.schemas.report_schema import ReportCreate, ReportOut, ReportResolve

router = APIRouter(
    prefix="/reports",
    tags=["Reports"],
    dependencies=[Depends(get_current_user)]
)

@router.post("", response_model=ReportOut, status_code=status.HTTP_201_CREATED)
async def submit_report(
    report_data: ReportCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    檢舉使用者、需求、訊息或評價。同一對象只能檢舉一次。
    """
    return await ReportService(db).submit_report(report_data, current_user)

@router.get("/my", response_model=List[ReportOut])
async def list_my_reports(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await ReportService(db).list_my_reports(current_user)

@router.get("", response_model=List[ReportOut])
async def list_reports(
    status: Optional[ReportStatusEnum] = None,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """
    (管理員) 檢舉列表，可用 ?status=pending 篩選
    """
    return await ReportService(db).list_reports(status)

@router.patch("/{report_id}", response_model=ReportOut)
async def resolve_report(
    report_id: str,
    resolve_data: ReportResolve,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """
    (管理員) 處理檢舉 (pending -> resolved / dismissed)
    """
    return await ReportService(db).resolve_report(report_id, admin, resolve_data.status)
