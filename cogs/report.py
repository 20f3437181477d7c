import discord
from discord import app_commands
from discord.ext import commands
from typing import Optional

from models.tables.report import Report
from utils.base_cog import BaseCog
from utils.command_registry import CommandTag
from utils.error_handling import handle_interaction_errors
from utils.logging import RequestContext
from utils.report_pipeline import AttachmentInput, ReportSubmission
from utils.validation import parse_discord_id

MAX_LINKS_SHOWN = 5


def report_confirmation_embed(
    report: Report,
    reporter: discord.abc.User,
    found_user: Optional[discord.User] = None,
) -> discord.Embed:
    """The embed a reporter gets back after a successful submission."""
    embed = discord.Embed(
        title="✅ Scam Report Submitted",
        description="Thank you for your report. Our moderators will review it shortly.",
        color=discord.Color.green(),
        timestamp=discord.utils.utcnow(),
    )
    embed.add_field(name="Report ID", value=f"`{report.id}`", inline=False)
    embed.add_field(name="Offender", value=report.offender_display_name, inline=True)
    embed.add_field(name="Reporter", value=reporter.mention, inline=True)
    embed.add_field(
        name="Submitted",
        value=discord.utils.format_dt(report.created_at, style="F") if report.created_at else "just now",
        inline=True,
    )
    embed.add_field(name="Screenshots", value=str(len(report.screenshot_paths)), inline=True)
    embed.add_field(name="Status", value="🔍 Under Review", inline=True)

    if report.description:
        embed.add_field(name="Description", value=report.description[:1024], inline=False)
    if found_user is not None:
        embed.add_field(name="Found User", value=f"{found_user} ({found_user.id})", inline=False)
    if report.links:
        shown = report.links[:MAX_LINKS_SHOWN]
        extra = len(report.links) - len(shown)
        value = "\n".join(shown)
        if extra > 0:
            value += f"\n…and {extra} more"
        embed.add_field(name="Links", value=value[:1024], inline=False)
    if report.is_vpn:
        embed.add_field(name="⚠️ VPN", value="VPN or proxy usage was detected", inline=False)

    embed.set_footer(text="Warden scam reports")
    return embed


def report_log_embed(report: Report, reporter: discord.abc.User) -> discord.Embed:
    """The embed posted to the log channel for moderators."""
    embed = discord.Embed(
        title="🚨 New Scam Report",
        color=discord.Color.orange(),
        timestamp=discord.utils.utcnow(),
    )
    embed.add_field(name="Report ID", value=f"`{report.id}`", inline=False)
    embed.add_field(name="Offender", value=report.offender_display_name, inline=True)
    embed.add_field(name="Reporter", value=f"{reporter.mention} ({reporter.id})", inline=True)
    embed.add_field(name="Screenshots", value=str(len(report.screenshot_paths)), inline=True)
    if report.offender_discord_id:
        embed.add_field(name="Offender ID", value=report.offender_discord_id, inline=True)
    if report.links:
        embed.add_field(name="Links", value=str(len(report.links)), inline=True)
    if report.is_vpn:
        embed.add_field(name="VPN", value="⚠️ Detected", inline=True)
    return embed


class ReportCog(BaseCog, name="report"):
    """Scam report submission."""

    @app_commands.command(name="report", description="Report a scammer with screenshot evidence")
    @app_commands.describe(
        offender_name="Display name of the scammer",
        screenshot1="Screenshot evidence (required)",
        offender_id="Discord user ID of the scammer, if known",
        email="Email address used by the scammer, if known",
        description="What happened",
        screenshot2="Additional screenshot",
        screenshot3="Additional screenshot",
    )
    @app_commands.guild_only()
    @handle_interaction_errors
    async def report(
        self,
        interaction: discord.Interaction,
        offender_name: app_commands.Range[str, 1, 100],
        screenshot1: discord.Attachment,
        offender_id: Optional[str] = None,
        email: Optional[str] = None,
        description: Optional[app_commands.Range[str, 1, 2000]] = None,
        screenshot2: Optional[discord.Attachment] = None,
        screenshot3: Optional[discord.Attachment] = None,
    ) -> None:
        """File a scam report.

        Args:
            interaction: The interaction that triggered the command
            offender_name: Display name of the reported user
            screenshot1: Required screenshot
            offender_id: Optional Discord ID of the reported user
            email: Optional email used by the reported user
            description: Optional free-text description; links are extracted from it
            screenshot2: Optional screenshot
            screenshot3: Optional screenshot
        """
        self.require(interaction, CommandTag.REPORT)
        await interaction.response.defer(ephemeral=True, thinking=True)

        attachments = [
            AttachmentInput.from_discord(attachment)
            for attachment in (screenshot1, screenshot2, screenshot3)
            if attachment is not None
        ]
        submission = ReportSubmission(
            reporter_id=interaction.user.id,
            reporter_username=str(interaction.user),
            offender_name=offender_name,
            offender_id=offender_id,
            offender_email=email,
            description=description,
            attachments=attachments,
        )

        with RequestContext(self.logger, "report", user_id=interaction.user.id):
            self.log_command_usage(interaction, CommandTag.REPORT, screenshots=len(attachments))
            report = await self.ctx.pipeline.submit(submission)

        found_user = await self._lookup_offender(report.offender_discord_id)
        await interaction.followup.send(
            embed=report_confirmation_embed(report, interaction.user, found_user),
            ephemeral=True,
        )
        self.audit.post(report_log_embed(report, interaction.user))

    async def _lookup_offender(self, offender_id: Optional[str]) -> Optional[discord.User]:
        user_id = parse_discord_id(offender_id)
        if user_id is None:
            return None
        try:
            return await self.bot.fetch_user(user_id)
        except discord.HTTPException as e:
            self.logger.info("offender_lookup_failed", offender_id=user_id, error=str(e))
            return None


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(ReportCog(bot, bot.services))
