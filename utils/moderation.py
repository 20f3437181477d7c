"""Pre-checks shared by /timeout, /kick, /ban and /addadmin."""

from typing import Optional

import discord

from utils.exceptions import MissingConfigurationError, PermissionError, ValidationError

MAX_TIMEOUT_MINUTES = 10080  # 7 days, Discord's own ceiling is 28
MAX_DELETE_MESSAGE_DAYS = 7
DEFAULT_REASON = "No reason provided"


def check_moderation_target(
    actor: discord.Member,
    target: discord.abc.User,
    action: str,
) -> None:
    """Reject self-targeting, equal/higher-ranked targets and administrators.

    ``target`` may be a plain ``discord.User`` (e.g. banning someone who already
    left); then only the self check applies.

    Raises:
        ValidationError: The actor targeted themselves.
        PermissionError: The target outranks or equals the actor, or is an administrator.
    """
    if target.id == actor.id:
        raise ValidationError("user", f"You cannot {action} yourself.")

    if not isinstance(target, discord.Member):
        return

    if target.guild_permissions.administrator:
        raise PermissionError(f"You cannot {action} an administrator.")

    if target.top_role.position >= actor.top_role.position:
        raise PermissionError(
            f"You cannot {action} someone with an equal or higher role."
        )


def check_admin_grant(
    actor: discord.Member,
    target: discord.Member,
    admin_role: Optional[discord.Role],
) -> discord.Role:
    """Pre-checks for /addadmin. Returns the role to grant."""
    if target.id == actor.id:
        raise ValidationError("user", "You cannot grant the admin role to yourself.")
    if admin_role is None:
        raise MissingConfigurationError("ADMIN_ROLE_ID", "The admin role is not configured or no longer exists")
    if any(role.id == admin_role.id for role in target.roles):
        raise ValidationError("user", f"{target.display_name} already has the admin role.")
    return admin_role


def normalize_reason(reason: Optional[str]) -> str:
    reason = (reason or "").strip()
    return reason[:512] if reason else DEFAULT_REASON
