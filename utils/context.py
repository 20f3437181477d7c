"""The dependency bundle handed to every cog.

``BotContext`` is built once in ``main.py`` from the loaded configuration,
the session factory and the shared aiohttp session. Cogs read everything they
need from it instead of importing module-level globals.
"""

from dataclasses import dataclass

import aiohttp
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config import BotConfig
from utils.background import BackgroundTasks
from utils.exporter import DatabaseExporter
from utils.image_processing import ImageStore
from utils.malware_scanner import MalwareScanner
from utils.permissions import RoleSettings
from utils.report_pipeline import ReportPipeline
from utils.repositories import AdminActionRepository, ReportRepository, UserTimeoutRepository
from utils.vpn_check import VPNChecker


@dataclass(frozen=True)
class BotContext:
    config: BotConfig
    roles: RoleSettings
    reports: ReportRepository
    actions: AdminActionRepository
    timeouts: UserTimeoutRepository
    images: ImageStore
    scanner: MalwareScanner
    pipeline: ReportPipeline
    exporter: DatabaseExporter
    tasks: BackgroundTasks

    @classmethod
    def build(
        cls,
        config: BotConfig,
        session_maker: async_sessionmaker[AsyncSession],
        http_session: aiohttp.ClientSession,
    ) -> "BotContext":
        reports = ReportRepository(session_maker)
        actions = AdminActionRepository(session_maker)
        timeouts = UserTimeoutRepository(session_maker)
        images = ImageStore(config.upload_dir)
        scanner = MalwareScanner(
            http_session,
            config.virus_total_api_key,
            fail_open=config.scan_fail_open,
        )
        pipeline = ReportPipeline(
            reports=reports,
            images=images,
            scanner=scanner,
            vpn_checker=VPNChecker(http_session, enabled=config.vpn_detection_enabled),
            max_file_size=config.max_file_size,
            allowed_file_types=config.allowed_file_types,
        )
        return cls(
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
