"""Repository for report operations."""

from collections.abc import Sequence
from typing import Iterable, Optional

from sqlalchemy import delete, func, or_, select

from models.tables.report import Report, ReportStatus
from models.tables.user_timeout import UserTimeout
from utils.exceptions import ValidationError
from utils.repository import BaseRepository, SessionMaker

DEFAULT_LIST_LIMIT = 10
MAX_LIST_LIMIT = 25


class ReportRepository(BaseRepository[Report, str]):
    """Repository for scam reports."""

    def __init__(self, session_maker: SessionMaker) -> None:
        super().__init__(session_maker, Report)

    async def create_report(
        self,
        report_id: str,
        reporter_id: int,
        reporter_username: str,
        offender_display_name: str,
        screenshot_paths: Sequence[str],
        offender_discord_id: Optional[str] = None,
        offender_email: Optional[str] = None,
        description: Optional[str] = None,
        links: Iterable[str] = (),
        reporter_ip: Optional[str] = None,
        is_vpn: bool = False,
    ) -> Report:
        """Persist a new report.

        Raises:
            ValidationError: If no screenshot paths are given.
            QueryError: If the insert fails; nothing is committed in that case.
        """
        if not screenshot_paths:
            raise ValidationError("screenshot", "A report needs at least one screenshot")

        report = Report(
            id=report_id,
            reporter_id=reporter_id,
            reporter_username=reporter_username,
            offender_display_name=offender_display_name,
            offender_discord_id=offender_discord_id,
            offender_email=offender_email,
            description=description,
            links=list(links),
            screenshot_paths=list(screenshot_paths),
            reporter_ip=reporter_ip,
            is_vpn=is_vpn,
            status=ReportStatus.PENDING,
        )
        return await self.create(report)

    async def list_reports(
        self,
        status: Optional[ReportStatus] = None,
        search: Optional[str] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> Sequence[Report]:
        """List reports, newest first.

        Args:
            status: Only return reports in this status.
            search: Case-insensitive substring of the offender name or report ID.
            limit: Maximum number of rows, clamped to 1..25.
        """
        limit = max(1, min(limit, MAX_LIST_LIMIT))
        stmt = select(Report)
        if status is not None:
            stmt = stmt.where(Report.status == status)
        if search:
            needle = search.lower()
            stmt = stmt.where(
                or_(
                    func.lower(Report.offender_display_name).contains(needle, autoescape=True),
                    func.lower(Report.id).contains(needle, autoescape=True),
                )
            )
        stmt = stmt.order_by(Report.created_at.desc()).limit(limit)

        async with self.session("list_reports") as session:
            result = await session.execute(stmt)
            return result.scalars().all()

    async def update_status(self, report_id: str, status: ReportStatus) -> Optional[Report]:
        """Set a report's lifecycle status. Returns ``None`` if it does not exist."""
        async with self.session("update_status") as session:
            report = await session.get(Report, report_id)
            if report is None:
                return None
            report.status = status
            await session.commit()
            await session.refresh(report)
            return report

    async def delete_report(self, report_id: str) -> bool:
        """Delete one report row. Returns False if it was already gone."""
        async with self.session("delete_report") as session:
            result = await session.execute(delete(Report).where(Report.id == report_id))
            await session.commit()
            return result.rowcount > 0

    async def all_screenshot_paths(self) -> list[str]:
        """Every stored screenshot path referenced by any report."""
        async with self.session("all_screenshot_paths") as session:
            result = await session.execute(select(Report.screenshot_paths))
            return [path for paths in result.scalars() for path in (paths or [])]

    async def clear_reports_and_timeouts(self) -> tuple[int, int]:
        """Delete every report and timeout row in one transaction.

        The admin_actions table is left untouched.

        Returns:
            (reports deleted, timeouts deleted)
        """
        async with self.session("clear_reports_and_timeouts") as session:
            reports = await session.execute(delete(Report))
            timeouts = await session.execute(delete(UserTimeout))
            await session.commit()
            return reports.rowcount, timeouts.rowcount

    async def status_counts(self) -> dict[ReportStatus, int]:
        """Number of reports per status; statuses with no reports map to 0."""
        async with self.session("status_counts") as session:
            result = await session.execute(
                select(Report.status, func.count()).group_by(Report.status)
            )
            counts = {status: 0 for status in ReportStatus}
            for status, total in result.all():
                counts[ReportStatus(status)] = total
            return counts

    async def vpn_count(self) -> int:
        return await self.count(Report.is_vpn.is_(True))

    async def all_reports(self) -> Sequence[Report]:
        """Every report, oldest first, for export."""
        return await self.get_all(Report.created_at.asc())

