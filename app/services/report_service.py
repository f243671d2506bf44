# app/services/report_service.py

import logging
import uuid
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import Conflict, Invalid, NotFound
from app.models.report import Report, ReportStatusEnum
from app.models.user import User
from app.repositories.report_repo import ReportRepository
from app.schemas.report_schema import ReportCreate
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


class ReportService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.report_repo = ReportRepository(db)

    async def submit_report(self, data: ReportCreate, reporter: User) -> Report:
        new_report = Report(
            report_id=str(uuid.uuid4()),
            reporter_id=reporter.user_id,
            target_type=data.target_type,
            target_id=data.target_id,
            reason=data.reason.strip(),
            description=data.description or None,
            status=ReportStatusEnum.pending,
        )
        try:
            report = await self.report_repo.create_report(new_report)
        except IntegrityError:
            await self.db.refresh(reporter)
            raise Conflict("您已檢舉過此對象")

        logger.info(f"Report {report.report_id} filed on {data.target_type.value}:{data.target_id} by {reporter.user_id}")
        return report

    async def list_my_reports(self, reporter: User) -> List[Report]:
        return await self.report_repo.list_reports_by_reporter(reporter.user_id)

    async def list_reports(self, status: Optional[ReportStatusEnum] = None) -> List[Report]:
        """(管理員) 檢舉列表，可依狀態篩選"""
        return await self.report_repo.list_reports(status)

    async def resolve_report(self, report_id: str, admin: User, status: ReportStatusEnum) -> Report:
        if status not in (ReportStatusEnum.resolved, ReportStatusEnum.dismissed):
            raise Invalid("處理結果只能是 resolved 或 dismissed")

        report = await self.report_repo.get_report_by_id(report_id)
        if report is None:
            raise NotFound("找不到此檢舉")
        if report.status != ReportStatusEnum.pending:
            raise Conflict("此檢舉已處理過")

        if not await self.report_repo.resolve_report(report_id, status, admin.user_id, utcnow()):
            await self.db.refresh(admin)
            raise Conflict("此檢舉已處理過")

        logger.info(f"Report {report_id} marked {status.value} by admin {admin.user_id}")
        return await self.report_repo.get_report_by_id(report_id)
