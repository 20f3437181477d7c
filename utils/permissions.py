"""Permission utilities for the Warden bot.

Access to commands is decided by a single ordered tier derived from the
member's roles and the three configured role IDs. ``tier`` is a pure function
so it can be checked exhaustively in tests; ``member_tier`` and
``require_tier`` adapt it to discord.py members.
"""

import enum
from typing import Iterable, Optional

import discord
import structlog

from utils.exceptions import RolePermissionError

logger = structlog.get_logger("permissions")


class Tier(enum.IntEnum):
    """Permission tiers. Higher values include every lower tier."""

    NONE = 0
    VERIFIED = 10
    GUARDIAN = 50
    ADMIN = 80

    @property
    def label(self) -> str:
        return self.name.lower()


class RoleSettings:
    """The role configuration ``tier`` is evaluated against."""

    __slots__ = ("verified_role_id", "guardian_role_id", "admin_role_id", "open_reporting")

    def __init__(
        self,
        verified_role_id: Optional[int] = None,
        guardian_role_id: Optional[int] = None,
        admin_role_id: Optional[int] = None,
        open_reporting: bool = False,
    ) -> None:
        self.verified_role_id = verified_role_id
        self.guardian_role_id = guardian_role_id
        self.admin_role_id = admin_role_id
        self.open_reporting = open_reporting

    @classmethod
    def from_config(cls, config) -> "RoleSettings":
        return cls(
            verified_role_id=config.verified_role_id,
            guardian_role_id=config.guardian_role_id,
            admin_role_id=config.admin_role_id,
            open_reporting=config.open_reporting,
        )


def tier(role_ids: Iterable[int], is_administrator: bool, settings: RoleSettings) -> Tier:
    """Compute the permission tier for a member.

    Args:
        role_ids: IDs of the roles the member holds.
        is_administrator: Whether the member has Discord's administrator permission.
        settings: Configured role IDs.

    Returns:
        The highest tier the member qualifies for.

    An unset verified role only grants everyone the verified tier when
    ``settings.open_reporting`` is enabled. Unset guardian/admin roles grant nothing.
    """
    roles = set(role_ids)

    if is_administrator:
        return Tier.ADMIN
    if settings.admin_role_id is not None and settings.admin_role_id in roles:
        return Tier.ADMIN
    if settings.guardian_role_id is not None and settings.guardian_role_id in roles:
        return Tier.GUARDIAN
    if settings.verified_role_id is None:
        return Tier.VERIFIED if settings.open_reporting else Tier.NONE
    if settings.verified_role_id in roles:
        return Tier.VERIFIED
    return Tier.NONE


def member_tier(member: discord.abc.User, settings: RoleSettings) -> Tier:
    """Tier of a guild member; users outside a guild (DMs) have no tier."""
    if not isinstance(member, discord.Member):
        return Tier.NONE
    return tier(
        (role.id for role in member.roles),
        member.guild_permissions.administrator,
        settings,
    )


def require_tier(member: discord.abc.User, required: Tier, settings: RoleSettings) -> Tier:
    """Raise ``RolePermissionError`` unless ``member`` holds at least ``required``.

    Returns:
        The member's actual tier.
    """
    actual = member_tier(member, settings)
    if actual < required:
        logger.info(
            "permission_denied",
            user_id=member.id,
            required=required.label,
            actual=actual.label,
        )
        raise RolePermissionError(required.label)
    return actual
