"""SQLAlchemy model for reports table."""

import enum
from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Enum, Index, JSON, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class ReportStatus(str, enum.Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class Report(Base):
    """Model for reports table.

    This table stores scam reports filed by verified members, together with the
    links found in the description and the paths of the stored screenshots.
    """

    __tablename__ = "reports"
    __table_args__ = (
        Index("idx_reports_status", "status"),
        Index("idx_reports_created_at", "created_at"),
        Index("idx_reports_reporter_id", "reporter_id"),
    )

    # Random uuid4 string so report IDs cannot be enumerated
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    reporter_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reporter_username: Mapped[str] = mapped_column(String(100), nullable=False)
    offender_display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    screenshot_paths: Mapped[list[str]] = mapped_column(JSON, nullable=False)

    offender_discord_id: Mapped[str | None] = mapped_column(String(32), nullable=True, default=None)
    offender_email: Mapped[str | None] = mapped_column(String(255), nullable=True, default=None)
    description: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    links: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    reporter_ip: Mapped[str | None] = mapped_column(String(45), nullable=True, default=None)
    is_vpn: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[ReportStatus] = mapped_column(
        Enum(
            ReportStatus,
            name="report_status",
            native_enum=False,
            length=20,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=False,
        default=ReportStatus.PENDING,
        server_default=ReportStatus.PENDING.value,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    @property
    def short_id(self) -> str:
        return self.id[:8]
