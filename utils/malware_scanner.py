"""VirusTotal client used to vet uploaded screenshots.

A file is uploaded to the v2 ``file/scan`` endpoint and the matching
``file/report`` is polled until VirusTotal has a verdict. Whether a missing
API key or an unreachable service counts as "safe" is decided by the
``scan_fail_open`` setting.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

import aiohttp
import structlog

from utils.exceptions import ServiceUnavailableError

logger = structlog.get_logger("malware_scanner")

SCAN_URL = "https://www.virustotal.com/vtapi/v2/file/scan"
REPORT_URL = "https://www.virustotal.com/vtapi/v2/file/report"

# VirusTotal v2 response_code: 1 = report ready, -2 = still queued
_REPORT_READY = 1


@dataclass(frozen=True)
class ScanVerdict:
    safe: bool
    positives: int = 0
    total: int = 0
    scan_id: Optional[str] = None
    skipped: bool = False


class MalwareScanner:
    """Submit file bytes to VirusTotal and wait for the verdict."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        api_key: Optional[str],
        fail_open: bool = False,
        poll_interval: float = 5.0,
        max_polls: int = 3,
        timeout: float = 30.0,
    ) -> None:
        self.session = session
        self.api_key = api_key
        self.fail_open = fail_open
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def scan(self, data: bytes, filename: str) -> ScanVerdict:
        """Scan one file.

        Returns:
            The verdict. ``skipped`` is set when no scan took place and
            ``fail_open`` allowed the file through.

        Raises:
            ServiceUnavailableError: If the scanner is missing or unreachable and
                ``fail_open`` is off.
        """
        if not self.configured:
            return self._unavailable(filename, "Screenshot scanning is not configured")

        try:
            scan_id = await self._submit(data, filename)
            return await self._await_report(scan_id, filename)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError, KeyError) as e:
            logger.error(
                "malware_scan_failed",
                filename=filename,
                error=str(e),
                error_type=type(e).__name__,
            )
            return self._unavailable(filename, "Screenshot scanning is temporarily unavailable", e)

    def _unavailable(self, filename: str, message: str, cause: Exception = None) -> ScanVerdict:
        if self.fail_open:
            logger.warning("malware_scan_skipped", filename=filename, reason=message)
            return ScanVerdict(safe=True, skipped=True)
        error = ServiceUnavailableError("malware scanner", message)
        if cause is not None:
            raise error from cause
        raise error

    async def _submit(self, data: bytes, filename: str) -> str:
        form = aiohttp.FormData()
        form.add_field("apikey", self.api_key)
        form.add_field("file", data, filename=filename, content_type="application/octet-stream")

        async with self.session.post(SCAN_URL, data=form, timeout=self.timeout) as response:
            response.raise_for_status()
            payload = await response.json(content_type=None)

        scan_id = payload["scan_id"]
        logger.debug("malware_scan_submitted", filename=filename, scan_id=scan_id)
        return scan_id

    async def _await_report(self, scan_id: str, filename: str) -> ScanVerdict:
        params = {"apikey": self.api_key, "resource": scan_id}

        for attempt in range(1, self.max_polls + 1):
            await asyncio.sleep(self.poll_interval)
            async with self.session.get(REPORT_URL, params=params, timeout=self.timeout) as response:
                response.raise_for_status()
                payload = await response.json(content_type=None)

            if payload.get("response_code") == _REPORT_READY:
                positives = int(payload.get("positives", 0))
                verdict = ScanVerdict(
                    safe=positives == 0,
                    positives=positives,
                    total=int(payload.get("total", 0)),
                    scan_id=scan_id,
                )
                logger.info(
                    "malware_scan_completed",
                    filename=filename,
                    positives=verdict.positives,
                    total=verdict.total,
                )
                return verdict

            logger.debug("malware_scan_pending", filename=filename, attempt=attempt)

        raise asyncio.TimeoutError(f"No verdict for {filename} after {self.max_polls} polls")
