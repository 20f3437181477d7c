"""Scam report submission.

``ReportPipeline.submit`` turns a ``ReportSubmission`` into a stored report.
Each stage is a gate: the first failure raises and later stages never run.

1. sanitize the free-text fields
2. check every attachment's declared size and extension
3. download every attachment and check it decodes within the size limits
4. transcode and store every screenshot
5. malware-scan every original upload
6. extract links from the description
7. persist the report

Screenshots stored in stage 4 are deleted again (best-effort) when stage 5 or
7 fails, so an aborted submission leaves no stored file behind.
"""

import uuid
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Sequence

import discord
import structlog

from models.tables.report import Report
from utils.exceptions import ExternalServiceError, MalwareDetectedError, ValidationError
from utils.image_processing import ImageStore
from utils.logging import TimingContext
from utils.malware_scanner import MalwareScanner
from utils.repositories.report_repository import ReportRepository
from utils.validation import (
    extract_links,
    sanitize_input,
    sanitize_optional,
    validate_attachment,
)
from utils.vpn_check import UNKNOWN_ORIGIN, VPNChecker

logger = structlog.get_logger("report_pipeline")

MAX_ATTACHMENTS = 3
OFFENDER_NAME_MAX_LENGTH = 100
OFFENDER_ID_MAX_LENGTH = 32
EMAIL_MAX_LENGTH = 255


@dataclass
class AttachmentInput:
    """An uploaded file, independent of where its bytes come from."""

    filename: str
    size: int
    read: Callable[[], Awaitable[bytes]]

    @classmethod
    def from_discord(cls, attachment: discord.Attachment) -> "AttachmentInput":
        async def read() -> bytes:
            try:
                return await attachment.read()
            except discord.HTTPException as e:
                raise ExternalServiceError(
                    "Discord", f"Could not download {attachment.filename}"
                ) from e

        return cls(filename=attachment.filename, size=attachment.size, read=read)


@dataclass
class ReportSubmission:
    reporter_id: int
    reporter_username: str
    offender_name: str
    attachments: List[AttachmentInput] = field(default_factory=list)
    offender_id: Optional[str] = None
    offender_email: Optional[str] = None
    description: Optional[str] = None
    reporter_origin: str = UNKNOWN_ORIGIN


@dataclass
class _Upload:
    filename: str
    data: bytes


class ReportPipeline:
    def __init__(
        self,
        reports: ReportRepository,
        images: ImageStore,
        scanner: MalwareScanner,
        vpn_checker: VPNChecker,
        max_file_size: int,
        allowed_file_types: Sequence[str],
    ) -> None:
        self.reports = reports
        self.images = images
        self.scanner = scanner
        self.vpn_checker = vpn_checker
        self.max_file_size = max_file_size
        self.allowed_file_types = list(allowed_file_types)

    async def submit(self, submission: ReportSubmission) -> Report:
        """Run every stage and return the persisted report.

        Raises:
            ValidationError: Bad text input or no/too many attachments.
            AttachmentError: An attachment failed a size, type or image check.
            MalwareDetectedError: The scanner flagged an upload.
            ServiceUnavailableError: The scanner was unavailable and fail-open is off.
            ExternalServiceError: An attachment could not be downloaded.
            QueryError: The report could not be stored.
        """
        offender_name = sanitize_input(submission.offender_name, OFFENDER_NAME_MAX_LENGTH)
        if not offender_name:
            raise ValidationError("offender_name", "Offender name cannot be empty")
        offender_id = sanitize_optional(submission.offender_id, OFFENDER_ID_MAX_LENGTH)
        offender_email = sanitize_optional(submission.offender_email, EMAIL_MAX_LENGTH)
        description = sanitize_optional(submission.description)

        attachments = submission.attachments
        if not attachments:
            raise ValidationError("screenshot", "At least one screenshot is required")
        if len(attachments) > MAX_ATTACHMENTS:
            raise ValidationError(
                "screenshot", f"No more than {MAX_ATTACHMENTS} screenshots can be attached"
            )

        for attachment in attachments:
            validate_attachment(
                attachment.filename,
                attachment.size,
                self.max_file_size,
                self.allowed_file_types,
            )

        uploads = []
        for attachment in attachments:
            data = await attachment.read()
            await self.images.validate(data, attachment.filename)
            uploads.append(_Upload(attachment.filename, data))

        report_id = str(uuid.uuid4())
        log = logger.bind(report_id=report_id, reporter_id=submission.reporter_id)

        stored_paths: List[str] = []
        try:
            async with TimingContext(log, "screenshots_store") as timing:
                for upload in uploads:
                    stored_paths.append(await self.images.store(upload.data, report_id))
                timing.add_info(count=len(stored_paths))

            await self._scan(uploads, log)

            links = extract_links(description)
            is_vpn = await self.vpn_checker.is_vpn(submission.reporter_origin)

            report = await self.reports.create_report(
                report_id=report_id,
                reporter_id=submission.reporter_id,
                reporter_username=submission.reporter_username,
                offender_display_name=offender_name,
                offender_discord_id=offender_id,
                offender_email=offender_email,
                description=description,
                links=links,
                screenshot_paths=stored_paths,
                reporter_ip=submission.reporter_origin,
                is_vpn=is_vpn,
            )
        except BaseException:
            if stored_paths:
                summary = self.images.delete(stored_paths)
                log.warning("report_aborted_screenshots_removed", removed=summary.deleted)
            raise

        log.info(
            "report_submitted",
            screenshots=len(stored_paths),
            links=len(links),
            is_vpn=is_vpn,
        )
        return report

    async def _scan(self, uploads: Sequence[_Upload], log) -> None:
        for index, upload in enumerate(uploads, start=1):
            verdict = await self.scanner.scan(upload.data, upload.filename)
            if not verdict.safe:
                log.warning(
                    "report_rejected_malware",
                    filename=upload.filename,
                    attachment=index,
                    positives=verdict.positives,
                )
                raise MalwareDetectedError(upload.filename, verdict.positives)
