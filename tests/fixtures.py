"""
Test fixtures for Warden.

This module provides reusable fixtures for setting up and tearing down
test environments, particularly for database testing, plus small fakes for
the services a ``BotContext`` normally wires to the network.
"""

import os
import sys
from collections.abc import Callable
from typing import Any, Dict, List, Optional

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.dirname(os.path.dirname(__file__))))

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Import all models to ensure they're registered with Base.metadata
import models.tables  # noqa: F401
from config import BotConfig
from models.base import Base
from utils.background import BackgroundTasks
from utils.context import BotContext
from utils.exporter import DatabaseExporter
from utils.image_processing import ImageStore
from utils.malware_scanner import ScanVerdict
from utils.permissions import RoleSettings
from utils.report_pipeline import ReportPipeline
from utils.repositories import AdminActionRepository, ReportRepository, UserTimeoutRepository

VERIFIED_ROLE_ID = 111111111111111111
GUARDIAN_ROLE_ID = 222222222222222222
ADMIN_ROLE_ID = 333333333333333333
LOG_CHANNEL_ID = 444444444444444444


class DatabaseFixture:
    """
    Fixture for database testing.

    This class provides methods for setting up and tearing down a test database,
    as well as creating sessions for interacting with the database.
    """

    def __init__(self, database_url: str = "sqlite+aiosqlite:///:memory:") -> None:
        """
        Initialize the database fixture.

        Args:
            database_url: The URL for the test database. Defaults to an in-memory SQLite database.
        """
        self.database_url = database_url
        self.engine: AsyncEngine | None = None
        self.session_maker: async_sessionmaker[AsyncSession] | None = None

    async def setup(self) -> None:
        """
        Set up the test database.

        This method creates the engine and session maker, and creates all tables.
        """
        # One shared connection, otherwise every session sees its own empty :memory: db
        self.engine = create_async_engine(self.database_url, echo=False, poolclass=StaticPool)
        self.session_maker = async_sessionmaker(
            self.engine, expire_on_commit=False, class_=AsyncSession
        )

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def teardown(self) -> None:
        """
        Tear down the test database.

        This method disposes of the engine, which closes all connections.
        """
        if self.engine:
            await self.engine.dispose()

    async def __aenter__(self) -> "DatabaseFixture":
        await self.setup()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.teardown()


class FakeScanner:
    """Stands in for ``MalwareScanner``; returns queued verdicts or raises."""

    def __init__(self, verdicts: Optional[List[ScanVerdict]] = None, error: Exception = None) -> None:
        self.verdicts = list(verdicts or [])
        self.error = error
        self.calls: List[str] = []

    async def scan(self, data: bytes, filename: str) -> ScanVerdict:
        self.calls.append(filename)
        if self.error is not None:
            raise self.error
        if self.verdicts:
            return self.verdicts.pop(0)
        return ScanVerdict(safe=True, total=70)


class FakeVPNChecker:
    def __init__(self, result: bool = False) -> None:
        self.result = result
        self.origins: List[str] = []

    async def is_vpn(self, origin: Optional[str]) -> bool:
        self.origins.append(origin)
        return self.result


class FailingReportRepository(ReportRepository):
    """A report repository whose inserts always fail."""

    def __init__(self, session_maker, error: Exception) -> None:
        super().__init__(session_maker)
        self.error = error

    async def create_report(self, *args: Any, **kwargs: Any):
        raise self.error


def make_config(tmp_path, **overrides: Any) -> BotConfig:
    values: Dict[str, Any] = {
        "bot_token": "test-token",
        "db_user": "warden",
        "db_password": "secret",
        "database": "warden_test",
        "upload_dir": str(tmp_path / "uploads"),
        "export_dir": str(tmp_path / "exports"),
        "verified_role_id": VERIFIED_ROLE_ID,
        "guardian_role_id": GUARDIAN_ROLE_ID,
        "admin_role_id": ADMIN_ROLE_ID,
        "log_channel_id": LOG_CHANNEL_ID,
    }
    values.update(overrides)
    return BotConfig(**values)


def make_context(
    tmp_path,
    session_maker: Callable[..., AsyncSession],
    scanner: Optional[FakeScanner] = None,
    vpn_checker: Optional[FakeVPNChecker] = None,
    **config_overrides: Any,
) -> BotContext:
    """Build a ``BotContext`` over a test database with network services faked."""
    config = make_config(tmp_path, **config_overrides)
    reports = ReportRepository(session_maker)
    actions = AdminActionRepository(session_maker)
    timeouts = UserTimeoutRepository(session_maker)
    images = ImageStore(config.upload_dir)
    scanner = scanner or FakeScanner()
    pipeline = ReportPipeline(
        reports=reports,
        images=images,
        scanner=scanner,
        vpn_checker=vpn_checker or FakeVPNChecker(),
        max_file_size=config.max_file_size,
        allowed_file_types=config.allowed_file_types,
    )
    return BotContext(
        config=config,
        roles=RoleSettings.from_config(config),
        reports=reports,
        actions=actions,
        timeouts=timeouts,
        images=images,
        scanner=scanner,
        pipeline=pipeline,
        exporter=DatabaseExporter(reports, actions, timeouts, config.export_dir),
        tasks=BackgroundTasks(),
    )
