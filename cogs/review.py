"""Report review commands for guardians: /viewreports and /reportstatus."""

from typing import Optional, Sequence

import discord
from discord import app_commands
from discord.ext import commands

from models.tables.admin_action import ActionType
from models.tables.report import Report, ReportStatus
from utils.base_cog import BaseCog
from utils.command_registry import CommandTag
from utils.error_handling import handle_interaction_errors
from utils.exceptions import ResourceNotFoundError
from utils.repositories.report_repository import DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT
from utils.validation import sanitize_optional

STATUS_EMOJI = {
    ReportStatus.PENDING: "🟡",
    ReportStatus.REVIEWED: "🔵",
    ReportStatus.RESOLVED: "🟢",
    ReportStatus.DISMISSED: "⚪",
}
MAX_EMBED_ENTRIES = 10

STATUS_CHOICES = [
    app_commands.Choice(name=status.value.capitalize(), value=status.value)
    for status in ReportStatus
]


def report_list_embed(reports: Sequence[Report], total_shown: Optional[int] = None) -> discord.Embed:
    """Summarize up to ten reports in one embed."""
    embed = discord.Embed(
        title="📋 Scam Reports",
        color=discord.Color.blue(),
        timestamp=discord.utils.utcnow(),
    )
    for report in reports[:MAX_EMBED_ENTRIES]:
        status = ReportStatus(report.status)
        created = discord.utils.format_dt(report.created_at, style="R") if report.created_at else "unknown"
        lines = [
            f"Status: {STATUS_EMOJI[status]} {status.value}",
            f"Reporter: <@{report.reporter_id}>",
            f"Screenshots: {len(report.screenshot_paths or [])}",
            f"Submitted: {created}",
        ]
        if report.offender_discord_id:
            lines.insert(1, f"Offender ID: {report.offender_discord_id}")
        if report.is_vpn:
            lines.append("⚠️ VPN detected")
        embed.add_field(
            name=f"`{report.short_id}` {report.offender_display_name}",
            value="\n".join(lines),
            inline=False,
        )

    count = total_shown if total_shown is not None else len(reports)
    if count > MAX_EMBED_ENTRIES:
        embed.set_footer(text=f"Showing {MAX_EMBED_ENTRIES} of {count} matching reports")
    else:
        embed.set_footer(text=f"{count} report(s)")
    return embed


class ReviewCog(BaseCog, name="review"):
    """Browse and triage submitted reports."""

    @app_commands.command(name="viewreports", description="View submitted scam reports")
    @app_commands.describe(
        status="Only show reports with this status",
        search="Search offender names and report IDs",
        limit="How many reports to fetch (1-25)",
    )
    @app_commands.choices(status=STATUS_CHOICES)
    @app_commands.guild_only()
    @handle_interaction_errors
    async def viewreports(
        self,
        interaction: discord.Interaction,
        status: Optional[app_commands.Choice[str]] = None,
        search: Optional[str] = None,
        limit: app_commands.Range[int, 1, MAX_LIST_LIMIT] = DEFAULT_LIST_LIMIT,
    ) -> None:
        self.require(interaction, CommandTag.VIEW_REPORTS)
        self.log_command_usage(interaction, CommandTag.VIEW_REPORTS, limit=limit)

        reports = await self.ctx.reports.list_reports(
            status=ReportStatus(status.value) if status else None,
            search=sanitize_optional(search),
            limit=limit,
        )
        if not reports:
            await interaction.response.send_message(
                "No reports found matching your criteria.", ephemeral=True
            )
            return

        await interaction.response.send_message(embed=report_list_embed(reports), ephemeral=True)

    @app_commands.command(name="reportstatus", description="Update the status of a report")
    @app_commands.describe(report_id="The full report ID", status="The new status")
    @app_commands.choices(status=STATUS_CHOICES)
    @app_commands.guild_only()
    @handle_interaction_errors
    async def reportstatus(
        self,
        interaction: discord.Interaction,
        report_id: str,
        status: app_commands.Choice[str],
    ) -> None:
        self.require(interaction, CommandTag.REPORT_STATUS)
        report_id = report_id.strip()
        new_status = ReportStatus(status.value)

        report = await self.ctx.reports.update_status(report_id, new_status)
        if report is None:
            raise ResourceNotFoundError("report", report_id, f"Report `{report_id}` was not found.")

        self.logger.info(
            "report_status_updated",
            report_id=report_id,
            status=new_status.value,
            user_id=interaction.user.id,
        )
        await self.audit.record(
            interaction.user,
            ActionType.UPDATE_REPORT_STATUS,
            target_id=report_id,
            details=f"Status changed to {new_status.value}",
        )
        await interaction.response.send_message(
            f"{STATUS_EMOJI[new_status]} Report `{report.short_id}` is now **{new_status.value}**.",
            ephemeral=True,
        )


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(ReviewCog(bot, bot.services))
