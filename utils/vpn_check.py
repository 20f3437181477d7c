"""Reporter origin lookup.

Discord does not expose the network address of the user behind an
interaction, so reports record ``UNKNOWN_ORIGIN`` and the VPN check only runs
for origins that are real public IP addresses. Any lookup failure is logged
and treated as "not a VPN"; the flag is advisory for reviewers.
"""

import asyncio
import ipaddress
from typing import Optional

import aiohttp
import structlog

logger = structlog.get_logger("vpn_check")

UNKNOWN_ORIGIN = "unknown"
LOOKUP_URL = "http://ip-api.com/json/{ip}"


def is_public_ip(origin: Optional[str]) -> bool:
    try:
        return ipaddress.ip_address(origin).is_global
    except ValueError:
        return False


class VPNChecker:
    def __init__(
        self,
        session: aiohttp.ClientSession,
        enabled: bool = False,
        timeout: float = 5.0,
    ) -> None:
        self.session = session
        self.enabled = enabled
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def is_vpn(self, origin: Optional[str]) -> bool:
        if not self.enabled or not is_public_ip(origin):
            return False

        try:
            async with self.session.get(
                LOOKUP_URL.format(ip=origin),
                params={"fields": "status,proxy,hosting"},
                timeout=self.timeout,
            ) as response:
                response.raise_for_status()
                payload = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning("vpn_lookup_failed", error=str(e), error_type=type(e).__name__)
            return False

        if payload.get("status") != "success":
            return False
        return bool(payload.get("proxy") or payload.get("hosting"))
