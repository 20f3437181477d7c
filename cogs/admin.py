"""Administrator commands: /addadmin, /clearreport and /exportdb."""

import os
from typing import List

import discord
from discord import app_commands
from discord.ext import commands

from models.tables.admin_action import ActionType
from utils.base_cog import BaseCog
from utils.command_registry import CommandTag
from utils.confirmation import ConfirmationOutcome, ConfirmationView
from utils.error_handling import describe_discord_error, handle_interaction_errors
from utils.exceptions import DiscordActionError, ResourceNotFoundError
from utils.exporter import ALL_TABLES, EXPORT_TABLES, ExportFile
from utils.moderation import check_admin_grant

SINGLE_DELETE_DEADLINE = 30.0
BULK_DELETE_DEADLINE = 60.0

TABLE_CHOICES = [
    app_commands.Choice(name=name.replace("_", " ").title(), value=name) for name in EXPORT_TABLES
] + [app_commands.Choice(name="All tables", value=ALL_TABLES)]


def confirmation_prompt(title: str, description: str, deadline: float) -> discord.Embed:
    embed = discord.Embed(title=title, description=description, color=discord.Color.red())
    embed.set_footer(text=f"This prompt expires in {deadline:.0f} seconds.")
    return embed


class AdminCog(BaseCog, name="admin"):
    """Destructive and privileged administrator commands."""

    clearreport = app_commands.Group(
        name="clearreport",
        description="Delete one report or every report",
        guild_only=True,
    )

    @app_commands.command(name="addadmin", description="Grant the admin role to a member")
    @app_commands.describe(user="The member to promote")
    @app_commands.guild_only()
    @handle_interaction_errors
    async def addadmin(self, interaction: discord.Interaction, user: discord.Member) -> None:
        self.require(interaction, CommandTag.ADD_ADMIN)
        admin_role_id = self.ctx.config.admin_role_id
        admin_role = interaction.guild.get_role(admin_role_id) if admin_role_id else None
        role = check_admin_grant(interaction.user, user, admin_role)
        self.log_command_usage(interaction, CommandTag.ADD_ADMIN, target_id=user.id)

        try:
            await user.add_roles(role, reason=f"Admin role granted by {interaction.user}")
        except discord.HTTPException as e:
            raise DiscordActionError("add_admin", describe_discord_error(e, "assign that role"), e.code) from e

        await self.audit.record(
            interaction.user,
            ActionType.ADD_ADMIN,
            target_id=str(user.id),
            details=f"Granted role {role.name} ({role.id})",
        )

        embed = discord.Embed(
            title="🛡️ Admin Role Granted",
            description=f"{user.mention} now has the {role.mention} role.",
            color=discord.Color.green(),
            timestamp=discord.utils.utcnow(),
        )
        embed.add_field(name="Granted by", value=interaction.user.mention, inline=True)
        await interaction.response.send_message(embed=embed, ephemeral=True)
        self.audit.post(embed)

        promotion = discord.Embed(
            title=f"You have been promoted to Admin in {interaction.guild.name}",
            description=f"You now have the **{role.name}** role.",
            color=discord.Color.green(),
            timestamp=discord.utils.utcnow(),
        )
        promotion.add_field(name="Granted by", value=str(interaction.user), inline=True)
        self.audit.notify(user, promotion)

    @clearreport.command(name="single", description="Delete one report and its screenshots")
    @app_commands.describe(report_id="The full report ID")
    @handle_interaction_errors
    async def clear_single(self, interaction: discord.Interaction, report_id: str) -> None:
        self.require(interaction, CommandTag.CLEAR_REPORT)
        report_id = report_id.strip()
        report = await self.ctx.reports.get_by_id(report_id)
        if report is None:
            raise ResourceNotFoundError("report", report_id, f"Report `{report_id}` was not found.")

        view = ConfirmationView(interaction.user.id, SINGLE_DELETE_DEADLINE, target_id=report_id)
        await interaction.response.send_message(
            embed=confirmation_prompt(
                "⚠️ Delete Report?",
                f"Report `{report.short_id}` against **{report.offender_display_name}** and its "
                f"{len(report.screenshot_paths)} screenshot(s) will be permanently deleted.",
                SINGLE_DELETE_DEADLINE,
            ),
            view=view,
            ephemeral=True,
        )

        outcome = await view.wait_for_outcome()
        if outcome is ConfirmationOutcome.CANCELLED:
            await interaction.edit_original_response(content="Deletion cancelled.", embed=None, view=None)
            return
        if outcome is ConfirmationOutcome.TIMED_OUT:
            await interaction.edit_original_response(
                content="Confirmation timed out. Report was not deleted.", embed=None, view=None
            )
            return

        # Files first, then the row; the two are not one transaction
        files = self.ctx.images.delete(report.screenshot_paths or [])
        deleted = await self.ctx.reports.delete_report(report_id)
        if not deleted:
            await interaction.edit_original_response(
                content=f"Report `{report.short_id}` was already deleted.", embed=None, view=None
            )
            return

        self.logger.info(
            "report_deleted",
            report_id=report_id,
            user_id=interaction.user.id,
            files_deleted=files.deleted,
            files_missing=files.missing,
            files_failed=files.failed,
        )
        await self.audit.record(
            interaction.user,
            ActionType.CLEAR_REPORT,
            target_id=report_id,
            details=f"Deleted report against {report.offender_display_name} ({files.deleted} file(s) removed)",
        )
        await interaction.edit_original_response(
            content=f"✅ Report `{report.short_id}` has been deleted.", embed=None, view=None
        )

    @clearreport.command(name="database", description="Delete every report and timeout record")
    @handle_interaction_errors
    async def clear_database(self, interaction: discord.Interaction) -> None:
        self.require(interaction, CommandTag.CLEAR_REPORT)
        total = await self.ctx.reports.count()

        view = ConfirmationView(interaction.user.id, BULK_DELETE_DEADLINE, confirm_label="Delete Everything")
        await interaction.response.send_message(
            embed=confirmation_prompt(
                "⚠️ Clear the Report Database?",
                f"All {total} report(s), their screenshots and every timeout record will be "
                "permanently deleted. The admin action log is kept.",
                BULK_DELETE_DEADLINE,
            ),
            view=view,
            ephemeral=True,
        )

        outcome = await view.wait_for_outcome()
        if outcome is ConfirmationOutcome.CANCELLED:
            await interaction.edit_original_response(content="Database clear cancelled.", embed=None, view=None)
            return
        if outcome is ConfirmationOutcome.TIMED_OUT:
            await interaction.edit_original_response(
                content="Confirmation timed out. Nothing was deleted.", embed=None, view=None
            )
            return

        paths = await self.ctx.reports.all_screenshot_paths()
        files = self.ctx.images.delete(paths)
        reports, timeouts = await self.ctx.reports.clear_reports_and_timeouts()

        summary = f"Cleared {reports} report(s), {timeouts} timeout(s) and {files.deleted} file(s)"
        self.logger.warning(
            "report_database_cleared",
            user_id=interaction.user.id,
            reports=reports,
            timeouts=timeouts,
            files_deleted=files.deleted,
            files_missing=files.missing,
            files_failed=files.failed,
        )
        await self.audit.record(interaction.user, ActionType.CLEAR_DATABASE, details=summary)
        await interaction.edit_original_response(content=f"✅ {summary}.", embed=None, view=None)

    @app_commands.command(name="exportdb", description="Export database tables as CSV files")
    @app_commands.describe(table="Which table to export")
    @app_commands.choices(table=TABLE_CHOICES)
    @app_commands.guild_only()
    @handle_interaction_errors
    async def exportdb(self, interaction: discord.Interaction, table: app_commands.Choice[str]) -> None:
        self.require(interaction, CommandTag.EXPORT_DB)
        self.log_command_usage(interaction, CommandTag.EXPORT_DB, table=table.value)
        await interaction.response.defer(ephemeral=True, thinking=True)

        exported: List[ExportFile] = await self.ctx.exporter.export(table.value)
        if not exported:
            await interaction.followup.send("No data found to export.", ephemeral=True)
            return

        paths = [item.path for item in exported]
        total_records = sum(item.records for item in exported)
        try:
            await interaction.followup.send(
                content=f"📦 Exported {total_records} record(s) from {len(exported)} table(s).",
                files=[discord.File(item.path, filename=os.path.basename(item.path)) for item in exported],
                ephemeral=True,
            )
        finally:
            self.ctx.tasks.spawn(self.ctx.exporter.cleanup_later(paths), "export_cleanup", files=len(paths))

        await self.audit.record(
            interaction.user,
            ActionType.EXPORT_DATABASE,
            details=(
                f"Exported {table.value} table(s) - {len(exported)} file(s), "
                f"{total_records} total records"
            ),
        )


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(AdminCog(bot, bot.services))
