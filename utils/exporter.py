"""CSV export of the reports, admin_actions and user_timeouts tables.

Each exported table becomes ``{table}_export_{YYYY-MM-DD_HH-MM-SS}.csv`` in
the export directory. Files are meant to be short-lived: ``cleanup_later``
removes them after the upload to Discord has had time to finish.
"""

import asyncio
import csv
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Sequence, Tuple

import structlog

from utils.exceptions import ValidationError
from utils.repositories import AdminActionRepository, ReportRepository, UserTimeoutRepository

logger = structlog.get_logger("exporter")

EXPORT_TABLES = ("reports", "admin_actions", "user_timeouts")
ALL_TABLES = "all"
CLEANUP_DELAY = 60.0

Column = Tuple[str, Callable[[Any], Any]]


def format_timestamp(value: Optional[datetime]) -> str:
    """``YYYY-MM-DD HH:MM:SS UTC``; naive datetimes are taken to be UTC."""
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def yes_no(value: Optional[bool]) -> str:
    return "Yes" if value else "No"


def _text(value: Any) -> str:
    return "" if value is None else str(value)


COLUMNS: dict[str, List[Column]] = {
    "reports": [
        ("Report ID", lambda r: r.id),
        ("Reporter ID", lambda r: r.reporter_id),
        ("Reporter Username", lambda r: r.reporter_username),
        ("Offender Name", lambda r: r.offender_display_name),
        ("Offender Discord ID", lambda r: _text(r.offender_discord_id)),
        ("Offender Email", lambda r: _text(r.offender_email)),
        ("Description", lambda r: _text(r.description)),
        ("Links", lambda r: "; ".join(r.links or [])),
        ("Reporter IP", lambda r: _text(r.reporter_ip)),
        ("VPN Detected", lambda r: yes_no(r.is_vpn)),
        ("Status", lambda r: r.status.value if hasattr(r.status, "value") else r.status),
        ("Created At", lambda r: format_timestamp(r.created_at)),
        ("Updated At", lambda r: format_timestamp(r.updated_at)),
    ],
    "admin_actions": [
        ("Action ID", lambda a: a.id),
        ("Admin ID", lambda a: a.admin_id),
        ("Admin Username", lambda a: a.admin_username),
        ("Action Type", lambda a: a.action_type),
        ("Target ID", lambda a: _text(a.target_id)),
        ("Details", lambda a: _text(a.details)),
        ("Created At", lambda a: format_timestamp(a.created_at)),
    ],
    "user_timeouts": [
        ("Timeout ID", lambda t: t.id),
        ("User ID", lambda t: t.user_id),
        ("Moderator ID", lambda t: t.moderator_id),
        ("Duration (Minutes)", lambda t: t.duration_minutes),
        ("Reason", lambda t: _text(t.reason)),
        ("Created At", lambda t: format_timestamp(t.created_at)),
    ],
}


@dataclass(frozen=True)
class ExportFile:
    table: str
    path: str
    records: int


class DatabaseExporter:
    def __init__(
        self,
        reports: ReportRepository,
        actions: AdminActionRepository,
        timeouts: UserTimeoutRepository,
        export_dir: str,
    ) -> None:
        self.export_dir = export_dir
        self._sources = {
            "reports": reports.all_reports,
            "admin_actions": actions.all_actions,
            "user_timeouts": timeouts.all_timeouts,
        }

    async def export(self, table: str, now: Optional[datetime] = None) -> List[ExportFile]:
        """Export ``table`` (or every table for ``"all"``).

        Returns:
            One ``ExportFile`` per non-empty table; empty tables produce no file.
        """
        if table == ALL_TABLES:
            tables = EXPORT_TABLES
        elif table in EXPORT_TABLES:
            tables = (table,)
        else:
            raise ValidationError("table", f"Unknown table {table}")

        stamp = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%d_%H-%M-%S")
        files = []
        for name in tables:
            exported = await self.export_table(name, stamp)
            if exported is not None:
                files.append(exported)
        return files

    async def export_table(self, table: str, stamp: str) -> Optional[ExportFile]:
        rows = await self._sources[table]()
        if not rows:
            logger.info("export_table_empty", table=table)
            return None

        path = os.path.join(self.export_dir, f"{table}_export_{stamp}.csv")
        await asyncio.to_thread(self._write_csv, path, COLUMNS[table], rows)
        logger.info("export_table_written", table=table, records=len(rows))
        return ExportFile(table=table, path=path, records=len(rows))

    def _write_csv(self, path: str, columns: Sequence[Column], rows: Sequence[Any]) -> None:
        os.makedirs(self.export_dir, exist_ok=True)
        with open(path, "w", newline="", encoding="utf-8") as handle:
            writer = csv.writer(handle)
            writer.writerow([header for header, _ in columns])
            for row in rows:
                writer.writerow([getter(row) for _, getter in columns])

    @staticmethod
    def remove(paths: Sequence[str]) -> None:
        for path in paths:
            try:
                os.remove(path)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning("export_cleanup_failed", path=path, error=str(e))

    async def cleanup_later(self, paths: Sequence[str], delay: float = CLEANUP_DELAY) -> None:
        """Remove ``paths`` after ``delay`` seconds, or immediately if cancelled first."""
        try:
            await asyncio.sleep(delay)
        finally:
            self.remove(paths)
            logger.debug("export_files_removed", count=len(paths))
