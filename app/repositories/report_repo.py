# app/repositories/report_repo.py

from datetime import datetime
from typing import List, Optional
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.models.report import Report, ReportStatusEnum

class ReportRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_report(self, report: Report) -> Report:
        self.db.add(report)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise
        return report

    async def get_report_by_id(self, report_id: str) -> Optional[Report]:
        stmt = (
            select(Report)
            .where(Report.report_id == report_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def list_reports_by_reporter(self, reporter_id: str) -> List[Report]:
        stmt = (
            select(Report)
            .where(Report.reporter_id == reporter_id)
            .order_by(Report.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def list_reports(self, status: Optional[ReportStatusEnum] = None) -> List[Report]:
        stmt = select(Report).order_by(Report.created_at.desc())
        if status is not None:
            stmt = stmt.where(Report.status == status)
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def resolve_report(
        self, report_id: str, status: ReportStatusEnum, admin_id: str, resolved_at: datetime
    ) -> bool:
        """
        pending -> resolved/dismissed；已處理過的檢舉不會被覆寫
        """
        result = await self.db.execute(
            update(Report)
            .where(Report.report_id == report_id, Report.status == ReportStatusEnum.pending)
            .values(status=status, resolved_by=admin_id, resolved_at=resolved_at)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.db.rollback()
            return False
        await self.db.commit()
        return True
