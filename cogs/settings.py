import discord
from discord import app_commands
from discord.ext import commands
from typing import List, Optional, Tuple

from config import BotConfig
from models.tables.admin_action import ActionType
from models.tables.report import ReportStatus
from utils.base_cog import BaseCog
from utils.command_registry import CommandTag
from utils.error_handling import handle_interaction_errors


def _yes_no(value: bool) -> str:
    return "✅ Enabled" if value else "❌ Disabled"


def _channel(channel_id: Optional[int]) -> str:
    return f"<#{channel_id}>" if channel_id else "Not configured"


def config_overview(config: BotConfig) -> List[Tuple[str, str]]:
    """(label, value) pairs describing the running configuration.

    Fields listed in ``BotConfig.get_sensitive_fields()`` are only ever
    reported as configured or not.
    """
    sensitive = BotConfig.get_sensitive_fields()
    overview = [
        ("Environment", config.environment.value),
        ("Command Scope", f"Guild {config.guild_id}" if config.guild_id else "Global"),
        ("Log Channel", _channel(config.log_channel_id)),
        ("Max File Size", f"{config.max_file_size / (1024 * 1024):g}MB"),
        ("Allowed File Types", ", ".join(config.allowed_file_types)),
        ("Open Reporting", _yes_no(config.open_reporting)),
        ("VPN Detection", _yes_no(config.vpn_detection_enabled)),
        ("Scan Fail-Open", _yes_no(config.scan_fail_open)),
    ]
    for field in sorted(sensitive):
        label = BotConfig.model_fields[field].description or field
        overview.append((label, "Configured" if getattr(config, field) else "Not set"))
    return overview


class SettingsCog(BaseCog, name="settings"):
    """Read-only views of the bot configuration and database state."""

    settings = app_commands.Group(
        name="settings",
        description="View bot configuration and statistics",
        guild_only=True,
    )

    @settings.command(name="view", description="Show the current bot configuration")
    @handle_interaction_errors
    async def settings_view(self, interaction: discord.Interaction) -> None:
        self.require(interaction, CommandTag.SETTINGS)
        self.log_command_usage(interaction, CommandTag.SETTINGS, section="view")

        embed = discord.Embed(
            title="⚙️ Bot Configuration",
            color=discord.Color.blurple(),
            timestamp=discord.utils.utcnow(),
        )
        for label, value in config_overview(self.ctx.config):
            embed.add_field(name=label, value=value, inline=True)
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @settings.command(name="roles", description="Show the configured roles and their member counts")
    @handle_interaction_errors
    async def settings_roles(self, interaction: discord.Interaction) -> None:
        self.require(interaction, CommandTag.SETTINGS)
        self.log_command_usage(interaction, CommandTag.SETTINGS, section="roles")

        embed = discord.Embed(
            title="👥 Role Configuration",
            color=discord.Color.blurple(),
            timestamp=discord.utils.utcnow(),
        )
        config = self.ctx.config
        for label, role_id in (
            ("Verified", config.verified_role_id),
            ("Guardian", config.guardian_role_id),
            ("Admin", config.admin_role_id),
        ):
            if role_id is None:
                value = "Not configured"
                if label == "Verified" and config.open_reporting:
                    value += " (everyone may report)"
            else:
                role = interaction.guild.get_role(role_id)
                value = f"{role.mention}\n{len(role.members)} member(s)" if role else f"⚠️ Role {role_id} not found"
            embed.add_field(name=label, value=value, inline=True)
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @settings.command(name="database", description="Show report and moderation statistics")
    @handle_interaction_errors
    async def settings_database(self, interaction: discord.Interaction) -> None:
        self.require(interaction, CommandTag.SETTINGS)
        self.log_command_usage(interaction, CommandTag.SETTINGS, section="database")
        await interaction.response.defer(ephemeral=True)

        statuses = await self.ctx.reports.status_counts()
        vpn = await self.ctx.reports.vpn_count()
        timeouts = await self.ctx.timeouts.count()
        actions = await self.ctx.actions.action_counts([ActionType.KICK, ActionType.BAN])

        embed = discord.Embed(
            title="🗄️ Database Statistics",
            color=discord.Color.blurple(),
            timestamp=discord.utils.utcnow(),
        )
        embed.add_field(name="Total Reports", value=str(sum(statuses.values())), inline=True)
        for status in ReportStatus:
            embed.add_field(name=status.value.capitalize(), value=str(statuses[status]), inline=True)
        embed.add_field(name="VPN Flagged", value=str(vpn), inline=True)
        embed.add_field(name="Timeouts", value=str(timeouts), inline=True)
        embed.add_field(name="Kicks", value=str(actions[ActionType.KICK]), inline=True)
        embed.add_field(name="Bans", value=str(actions[ActionType.BAN]), inline=True)
        await interaction.followup.send(embed=embed, ephemeral=True)


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(SettingsCog(bot, bot.services))
