from datetime import timedelta
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from models.tables.admin_action import ActionType
from utils.base_cog import BaseCog
from utils.command_registry import CommandTag
from utils.error_handling import describe_discord_error, handle_interaction_errors
from utils.exceptions import DiscordActionError, ValidationError
from utils.moderation import (
    MAX_DELETE_MESSAGE_DAYS,
    MAX_TIMEOUT_MINUTES,
    check_moderation_target,
    normalize_reason,
)


def format_duration(minutes: int) -> str:
    """Render a minute count as e.g. ``2 days 3 hours 5 minutes``."""
    days, remainder = divmod(minutes, 1440)
    hours, mins = divmod(remainder, 60)
    parts = []
    for amount, unit in ((days, "day"), (hours, "hour"), (mins, "minute")):
        if amount:
            parts.append(f"{amount} {unit}{'s' if amount != 1 else ''}")
    return " ".join(parts) or "0 minutes"


def moderation_embed(
    title: str,
    target: discord.abc.User,
    moderator: discord.abc.User,
    reason: str,
    color: discord.Color,
    **extra: str,
) -> discord.Embed:
    embed = discord.Embed(title=title, color=color, timestamp=discord.utils.utcnow())
    embed.add_field(name="User", value=f"{target.mention} ({target.id})", inline=True)
    embed.add_field(name="Moderator", value=moderator.mention, inline=True)
    for name, value in extra.items():
        embed.add_field(name=name.replace("_", " ").title(), value=value, inline=True)
    embed.add_field(name="Reason", value=reason, inline=False)
    return embed


def notice_embed(action: str, guild: discord.Guild, reason: str, color: discord.Color, **extra: str) -> discord.Embed:
    """The direct message sent to the member being moderated."""
    embed = discord.Embed(
        title=f"You have been {action} in {guild.name}",
        color=color,
        timestamp=discord.utils.utcnow(),
    )
    for name, value in extra.items():
        embed.add_field(name=name.replace("_", " ").title(), value=value, inline=True)
    embed.add_field(name="Reason", value=reason, inline=False)
    return embed


class ModCogs(BaseCog, name="Moderation"):
    """Member moderation: timeout, kick and ban."""

    def __init__(self, bot, context):
        super().__init__(bot, context, name="mods")

    @app_commands.command(name="timeout", description="Time out a member")
    @app_commands.describe(
        user="The member to time out",
        duration="Duration in minutes (1-10080)",
        reason="Why the member is being timed out",
    )
    @app_commands.guild_only()
    @handle_interaction_errors
    async def timeout(
        self,
        interaction: discord.Interaction,
        user: discord.Member,
        duration: app_commands.Range[int, 1, MAX_TIMEOUT_MINUTES],
        reason: Optional[str] = None,
    ) -> None:
        self.require(interaction, CommandTag.TIMEOUT)
        check_moderation_target(interaction.user, user, "timeout")
        reason = normalize_reason(reason)
        self.log_command_usage(interaction, CommandTag.TIMEOUT, target_id=user.id, duration=duration)

        try:
            await user.timeout(timedelta(minutes=duration), reason=f"{reason} (by {interaction.user})")
        except discord.HTTPException as e:
            raise DiscordActionError(
                "timeout", describe_discord_error(e, "time out that member"), e.code
            ) from e

        await self.audit.record_timeout(interaction.user, user, duration, reason)

        readable = format_duration(duration)
        await interaction.response.send_message(
            embed=moderation_embed(
                "⏱️ Member Timed Out",
                user,
                interaction.user,
                reason,
                discord.Color.orange(),
                duration=readable,
            ),
            ephemeral=True,
        )
        self.audit.notify(
            user,
            notice_embed("timed out", interaction.guild, reason, discord.Color.orange(), duration=readable),
        )
        self.audit.post(
            moderation_embed(
                "⏱️ Member Timed Out", user, interaction.user, reason, discord.Color.orange(), duration=readable
            )
        )

    @app_commands.command(name="kick", description="Kick a member from the server")
    @app_commands.describe(user="The member to kick", reason="Why the member is being kicked")
    @app_commands.guild_only()
    @handle_interaction_errors
    async def kick(
        self,
        interaction: discord.Interaction,
        user: discord.Member,
        reason: Optional[str] = None,
    ) -> None:
        self.require(interaction, CommandTag.KICK)
        check_moderation_target(interaction.user, user, "kick")
        reason = normalize_reason(reason)
        self.log_command_usage(interaction, CommandTag.KICK, target_id=user.id)
        await interaction.response.defer(ephemeral=True)

        # Once kicked the bot no longer shares a guild with them, so DM first
        notified = await self.audit.notify_now(
            user, notice_embed("kicked", interaction.guild, reason, discord.Color.red())
        )

        try:
            await user.kick(reason=f"{reason} (by {interaction.user})")
        except discord.HTTPException as e:
            raise DiscordActionError("kick", describe_discord_error(e, "kick that member"), e.code) from e

        await self.audit.record(
            interaction.user,
            ActionType.KICK,
            target_id=str(user.id),
            details=f"User: {user}, Reason: {reason}",
        )

        embed = moderation_embed("👢 Member Kicked", user, interaction.user, reason, discord.Color.red())
        if not notified:
            embed.set_footer(text="The member could not be notified by DM")
        await interaction.followup.send(embed=embed, ephemeral=True)
        self.audit.post(moderation_embed("👢 Member Kicked", user, interaction.user, reason, discord.Color.red()))

    @app_commands.command(name="ban", description="Ban a user from the server")
    @app_commands.describe(
        user="The user to ban",
        delete_days="Days of their messages to delete (0-7)",
        reason="Why the user is being banned",
    )
    @app_commands.guild_only()
    @handle_interaction_errors
    async def ban(
        self,
        interaction: discord.Interaction,
        user: discord.User,
        delete_days: app_commands.Range[int, 0, MAX_DELETE_MESSAGE_DAYS] = 0,
        reason: Optional[str] = None,
    ) -> None:
        self.require(interaction, CommandTag.BAN)
        guild = interaction.guild
        target = guild.get_member(user.id) or user
        check_moderation_target(interaction.user, target, "ban")
        reason = normalize_reason(reason)
        self.log_command_usage(interaction, CommandTag.BAN, target_id=user.id, delete_days=delete_days)
        await interaction.response.defer(ephemeral=True)

        try:
            await guild.fetch_ban(user)
        except discord.NotFound:
            pass
        except discord.HTTPException as e:
            raise DiscordActionError("ban", describe_discord_error(e, "read the ban list"), e.code) from e
        else:
            raise ValidationError("user", f"{user} is already banned.")

        notified = False
        if isinstance(target, discord.Member):
            notified = await self.audit.notify_now(
                target, notice_embed("banned", guild, reason, discord.Color.dark_red())
            )

        try:
            await guild.ban(
                user,
                reason=f"{reason} (by {interaction.user})",
                delete_message_seconds=delete_days * 86400,
            )
        except discord.HTTPException as e:
            raise DiscordActionError("ban", describe_discord_error(e, "ban that user"), e.code) from e

        await self.audit.record(
            interaction.user,
            ActionType.BAN,
            target_id=str(user.id),
            details=f"User: {user}, Reason: {reason}, Delete Days: {delete_days}",
        )

        embed = moderation_embed(
            "🔨 User Banned",
            user,
            interaction.user,
            reason,
            discord.Color.dark_red(),
            messages_deleted=f"{delete_days} day(s)",
        )
        if isinstance(target, discord.Member) and not notified:
            embed.set_footer(text="The user could not be notified by DM")
        await interaction.followup.send(embed=embed, ephemeral=True)
        self.audit.post(
            moderation_embed(
                "🔨 User Banned",
                user,
                interaction.user,
                reason,
                discord.Color.dark_red(),
                messages_deleted=f"{delete_days} day(s)",
            )
        )


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(ModCogs(bot, bot.services))
