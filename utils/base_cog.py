"""Base cog class for the Warden bot.

This module provides a base class for cogs with common functionality,
reducing code duplication across cogs.
"""

import discord
import structlog
from discord.ext import commands

from utils.audit import AuditTrail
from utils.command_registry import REQUIRED_TIER, CommandTag
from utils.context import BotContext
from utils.permissions import Tier, require_tier


class BaseCog(commands.Cog):
    """Base class for cogs with common functionality.

    Attributes:
        bot: The bot instance.
        ctx: Shared services built at startup.
        audit: Best-effort audit writer for privileged actions.
        logger: Logger for this cog.
    """

    def __init__(self, bot: commands.Bot, context: BotContext, name: str | None = None) -> None:
        self.bot = bot
        self.ctx = context
        cog_name = name or self.__class__.__name__.lower().replace("cog", "")
        self.logger = structlog.get_logger(f"cogs.{cog_name}")
        self.audit = AuditTrail(
            bot,
            context.actions,
            context.timeouts,
            context.tasks,
            context.config.log_channel_id,
        )

    def require(self, interaction: discord.Interaction, tag: CommandTag) -> Tier:
        """Raise ``RolePermissionError`` unless the invoker may run ``tag``."""
        return require_tier(interaction.user, REQUIRED_TIER[tag], self.ctx.roles)

    def log_command_usage(self, interaction: discord.Interaction, tag: CommandTag, **fields) -> None:
        self.logger.info(
            "command_used",
            command=tag.value,
            user_id=interaction.user.id,
            guild_id=interaction.guild.id if interaction.guild else None,
            **fields,
        )
