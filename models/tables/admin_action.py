"""SQLAlchemy model for admin_actions table."""

import enum
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class ActionType(str, enum.Enum):
    ADD_ADMIN = "add_admin"
    BAN = "ban"
    KICK = "kick"
    TIMEOUT = "timeout"
    CLEAR_REPORT = "clear_report"
    CLEAR_DATABASE = "clear_database"
    EXPORT_DATABASE = "export_database"
    UPDATE_REPORT_STATUS = "update_report_status"


class AdminAction(Base):
    """Model for admin_actions table.

    Append-only audit trail of privileged operations. Rows are never updated,
    and clearing the report database deliberately leaves this table intact.
    """

    __tablename__ = "admin_actions"
    __table_args__ = (
        Index("idx_admin_actions_admin_id", "admin_id"),
        Index("idx_admin_actions_action_type", "action_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    admin_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    admin_username: Mapped[str] = mapped_column(String(100), nullable=False)
    action_type: Mapped[str] = mapped_column(String(50), nullable=False)
    target_id: Mapped[str | None] = mapped_column(String(36), nullable=True, default=None)
    details: Mapped[str | None] = mapped_column(Text, nullable=True, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
