"""Repositories for the reports, admin_actions and user_timeouts tables."""

from utils.repositories.admin_action_repository import AdminActionRepository
from utils.repositories.report_repository import ReportRepository
from utils.repositories.user_timeout_repository import UserTimeoutRepository

__all__ = ["AdminActionRepository", "ReportRepository", "UserTimeoutRepository"]
