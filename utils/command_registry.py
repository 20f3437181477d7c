"""The closed set of slash commands the bot provides.

Every command has a ``CommandTag``; the tag fixes which extension defines it
and which permission tier it needs. ``verify_registry`` runs once after the
extensions load and refuses to start the bot if the command tree and this
table disagree.
"""

import enum
from typing import Dict, List

from discord import app_commands

from utils.exceptions import ConfigurationError
from utils.permissions import Tier


class CommandTag(str, enum.Enum):
    REPORT = "report"
    VIEW_REPORTS = "viewreports"
    REPORT_STATUS = "reportstatus"
    TIMEOUT = "timeout"
    KICK = "kick"
    BAN = "ban"
    ADD_ADMIN = "addadmin"
    CLEAR_REPORT = "clearreport"
    EXPORT_DB = "exportdb"
    SETTINGS = "settings"


COMMAND_EXTENSIONS: Dict[CommandTag, str] = {
    CommandTag.REPORT: "cogs.report",
    CommandTag.VIEW_REPORTS: "cogs.review",
    CommandTag.REPORT_STATUS: "cogs.review",
    CommandTag.TIMEOUT: "cogs.mods",
    CommandTag.KICK: "cogs.mods",
    CommandTag.BAN: "cogs.mods",
    CommandTag.ADD_ADMIN: "cogs.admin",
    CommandTag.CLEAR_REPORT: "cogs.admin",
    CommandTag.EXPORT_DB: "cogs.admin",
    CommandTag.SETTINGS: "cogs.settings",
}

REQUIRED_TIER: Dict[CommandTag, Tier] = {
    CommandTag.REPORT: Tier.VERIFIED,
    CommandTag.VIEW_REPORTS: Tier.GUARDIAN,
    CommandTag.REPORT_STATUS: Tier.GUARDIAN,
    CommandTag.TIMEOUT: Tier.GUARDIAN,
    CommandTag.KICK: Tier.ADMIN,
    CommandTag.BAN: Tier.ADMIN,
    CommandTag.ADD_ADMIN: Tier.ADMIN,
    CommandTag.CLEAR_REPORT: Tier.ADMIN,
    CommandTag.EXPORT_DB: Tier.ADMIN,
    CommandTag.SETTINGS: Tier.ADMIN,
}


def extensions() -> List[str]:
    """Extensions to load, in first-mention order."""
    return list(dict.fromkeys(COMMAND_EXTENSIONS.values()))


def verify_registry(tree: app_commands.CommandTree) -> None:
    """Check the loaded command tree against ``CommandTag``.

    Raises:
        ConfigurationError: If a tagged command is missing or an untagged one exists.
    """
    registered = {command.name for command in tree.get_commands()}
    expected = {tag.value for tag in CommandTag}

    missing = sorted(expected - registered)
    unexpected = sorted(registered - expected)
    if missing or unexpected:
        problems = []
        if missing:
            problems.append(f"missing: {', '.join(missing)}")
        if unexpected:
            problems.append(f"unregistered: {', '.join(unexpected)}")
        raise ConfigurationError(f"Command tree does not match the registry ({'; '.join(problems)})")
