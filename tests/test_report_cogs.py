"""
Tests for the /report, /viewreports, /reportstatus and /settings commands.
"""

import os
import sys
from io import BytesIO
from unittest.mock import AsyncMock, MagicMock

import pytest
from discord import app_commands
from PIL import Image

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.dirname(os.path.dirname(__file__))))

from cogs.report import ReportCog, report_confirmation_embed
from cogs.review import ReviewCog, report_list_embed
from cogs.settings import SettingsCog, config_overview
from models.tables import ActionType, Report, ReportStatus
from tests.fixtures import (
    ADMIN_ROLE_ID,
    GUARDIAN_ROLE_ID,
    VERIFIED_ROLE_ID,
    FakeScanner,
    make_config,
    make_context,
)
from tests.mock_factories import (
    MockAttachmentFactory,
    MockGuildFactory,
    MockInteractionFactory,
    MockMemberFactory,
    MockRoleFactory,
    MockUserFactory,
    make_bot,
)
from utils.malware_scanner import ScanVerdict


def png() -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (400, 300), color=(200, 30, 30)).save(buffer, "PNG")
    return buffer.getvalue()


def field_map(embed) -> dict:
    return {field.name: field.value for field in embed.fields}


@pytest.fixture
def env(db, tmp_path):
    verified_role = MockRoleFactory.create(role_id=VERIFIED_ROLE_ID, name="Verified", position=1)
    guardian_role = MockRoleFactory.create(role_id=GUARDIAN_ROLE_ID, name="Guardian", position=5)
    admin_role = MockRoleFactory.create(role_id=ADMIN_ROLE_ID, name="Admin", position=10)
    guild = MockGuildFactory.create(roles=[verified_role, guardian_role, admin_role])
    reporter = MockMemberFactory.create(user_id=1, name="reporter", roles=[verified_role], guild=guild)
    guardian = MockMemberFactory.create(user_id=2, name="guardian", roles=[guardian_role], guild=guild)
    admin = MockMemberFactory.create(user_id=3, name="admin", roles=[admin_role], guild=guild)
    stranger = MockMemberFactory.create(user_id=4, name="stranger", guild=guild)
    admin_role.members = [admin]
    guardian_role.members = [guardian]

    scanner = FakeScanner()
    bot = make_bot()
    context = make_context(tmp_path, db.session_maker, scanner=scanner)
    return MagicMock(
        bot=bot,
        context=context,
        scanner=scanner,
        guild=guild,
        reporter=reporter,
        guardian=guardian,
        admin=admin,
        stranger=stranger,
    )


def invoke(env, user):
    return MockInteractionFactory.create(user=user, guild=env.guild)


async def add_report(env, report_id: str, offender: str, status=ReportStatus.PENDING) -> None:
    async with env.context.reports.session_maker() as session:
        session.add(
            Report(
                id=report_id,
                reporter_id=env.reporter.id,
                reporter_username="reporter",
                offender_display_name=offender,
                screenshot_paths=["uploads/x.webp"],
                links=[],
                status=status,
            )
        )
        await session.commit()


class TestReportCommand:
    @pytest.mark.asyncio
    async def test_verified_member_files_report(self, env):
        cog = ReportCog(env.bot, env.context)
        interaction = invoke(env, env.reporter)

        await cog.report.callback(
            cog,
            interaction,
            "Fake Support",
            MockAttachmentFactory.create(png(), "proof.png"),
            None,
            None,
            "DM'd me https://nitro-free.example/x",
            None,
            None,
        )
        await env.context.tasks.drain(timeout=1)

        interaction.response.defer.assert_awaited_once_with(ephemeral=True, thinking=True)
        embed = interaction.followup.send.call_args.kwargs["embed"]
        fields = field_map(embed)
        assert embed.title == "✅ Scam Report Submitted"
        assert fields["Offender"] == "Fake Support"
        assert fields["Screenshots"] == "1"
        assert fields["Status"] == "🔍 Under Review"
        assert fields["Links"] == "https://nitro-free.example/x"
        assert "Found User" not in fields
        assert await env.context.reports.count() == 1
        env.bot.log_channel.send.assert_awaited_once()
        assert env.bot.log_channel.send.call_args.kwargs["embed"].title == "🚨 New Scam Report"

    @pytest.mark.asyncio
    async def test_offender_id_is_resolved(self, env):
        env.bot.fetch_user = AsyncMock(return_value=MockUserFactory.create(user_id=987654321098765432, name="scammer"))
        cog = ReportCog(env.bot, env.context)
        interaction = invoke(env, env.reporter)

        await cog.report.callback(
            cog, interaction, "Scammer", MockAttachmentFactory.create(png(), "a.png"),
            "987654321098765432", None, None, None, None,
        )

        env.bot.fetch_user.assert_awaited_once_with(987654321098765432)
        fields = field_map(interaction.followup.send.call_args.kwargs["embed"])
        assert fields["Found User"] == "scammer (987654321098765432)"

    @pytest.mark.asyncio
    async def test_unverified_member_is_refused(self, env):
        cog = ReportCog(env.bot, env.context)
        interaction = invoke(env, env.stranger)

        await cog.report.callback(
            cog, interaction, "X", MockAttachmentFactory.create(png()), None, None, None, None, None
        )

        interaction.response.defer.assert_not_awaited()
        assert env.scanner.calls == []
        assert await env.context.reports.count() == 0

    @pytest.mark.asyncio
    async def test_malware_is_reported_back(self, env):
        env.scanner.verdicts = [ScanVerdict(safe=False, positives=5)]
        cog = ReportCog(env.bot, env.context)
        interaction = invoke(env, env.reporter)

        await cog.report.callback(
            cog, interaction, "X", MockAttachmentFactory.create(png(), "evil.png"), None, None, None, None, None
        )

        message = interaction.followup.send.call_args.args[0]
        assert message.startswith("❌ Security scan failed")
        assert "Report not submitted" in message
        assert await env.context.reports.count() == 0

    def test_confirmation_embed_truncates_links(self):
        report = Report(
            id="r" * 36,
            reporter_id=1,
            reporter_username="u",
            offender_display_name="o",
            screenshot_paths=["a"],
            links=[f"https://{i}.example" for i in range(8)],
            is_vpn=True,
            description="d" * 2000,
        )

        fields = field_map(report_confirmation_embed(report, MockUserFactory.create()))

        assert fields["Links"].endswith("…and 3 more")
        assert len(fields["Description"]) == 1024
        assert "⚠️ VPN" in fields
        assert fields["Submitted"] == "just now"


class TestReviewCommands:
    @pytest.mark.asyncio
    async def test_view_reports_filters_by_status(self, env):
        await add_report(env, "a" * 36, "Open Case")
        await add_report(env, "b" * 36, "Closed Case", ReportStatus.RESOLVED)
        cog = ReviewCog(env.bot, env.context)
        interaction = invoke(env, env.guardian)

        await cog.viewreports.callback(
            cog, interaction, app_commands.Choice(name="Resolved", value="resolved"), None, 10
        )

        embed = interaction.response.send_message.call_args.kwargs["embed"]
        assert [field.name for field in embed.fields] == ["`bbbbbbbb` Closed Case"]
        assert embed.footer.text == "1 report(s)"

    @pytest.mark.asyncio
    async def test_view_reports_empty(self, env):
        cog = ReviewCog(env.bot, env.context)
        interaction = invoke(env, env.guardian)

        await cog.viewreports.callback(cog, interaction, None, "nobody", 10)

        interaction.response.send_message.assert_awaited_once_with(
            "No reports found matching your criteria.", ephemeral=True
        )

    @pytest.mark.asyncio
    async def test_verified_member_cannot_view(self, env):
        cog = ReviewCog(env.bot, env.context)
        interaction = invoke(env, env.reporter)

        await cog.viewreports.callback(cog, interaction, None, None, 10)

        assert interaction.response.send_message.call_args.args[0].startswith("🚫")

    @pytest.mark.asyncio
    async def test_status_update_is_audited(self, env):
        await add_report(env, "c" * 36, "Case")
        cog = ReviewCog(env.bot, env.context)
        interaction = invoke(env, env.guardian)

        await cog.reportstatus.callback(
            cog, interaction, "c" * 36, app_commands.Choice(name="Dismissed", value="dismissed")
        )

        assert (await env.context.reports.get_by_id("c" * 36)).status == ReportStatus.DISMISSED
        interaction.response.send_message.assert_awaited_once_with(
            "⚪ Report `cccccccc` is now **dismissed**.", ephemeral=True
        )
        [entry] = await env.context.actions.all_actions()
        assert entry.action_type == ActionType.UPDATE_REPORT_STATUS.value
        assert entry.details == "Status changed to dismissed"

    @pytest.mark.asyncio
    async def test_status_update_unknown_report(self, env):
        cog = ReviewCog(env.bot, env.context)
        interaction = invoke(env, env.guardian)

        await cog.reportstatus.callback(cog, interaction, "missing", app_commands.Choice(name="Resolved", value="resolved"))

        assert interaction.response.send_message.call_args.args[0] == "❌ Report `missing` was not found."
        assert await env.context.actions.count() == 0

    def test_list_embed_caps_entries(self):
        reports = [
            Report(
                id=f"{i:08d}-0000-0000-0000-000000000000",
                reporter_id=1,
                reporter_username="u",
                offender_display_name=f"Offender {i}",
                screenshot_paths=["a"],
                links=[],
                status=ReportStatus.PENDING,
                is_vpn=False,
            )
            for i in range(12)
        ]

        embed = report_list_embed(reports)

        assert len(embed.fields) == 10
        assert embed.footer.text == "Showing 10 of 12 matching reports"


class TestSettingsCommands:
    def test_overview_never_shows_secrets(self, tmp_path):
        config = make_config(tmp_path, virus_total_api_key="vt-secret-value")

        overview = dict(config_overview(config))

        assert overview["VirusTotal API key"] == "Configured"
        assert overview["Discord bot token"] == "Configured"
        assert "vt-secret-value" not in " ".join(overview.values())
        assert "test-token" not in " ".join(overview.values())

    @pytest.mark.asyncio
    async def test_roles_view(self, env):
        cog = SettingsCog(env.bot, env.context)
        interaction = invoke(env, env.admin)

        await cog.settings_roles.callback(cog, interaction)

        fields = field_map(interaction.response.send_message.call_args.kwargs["embed"])
        assert fields["Admin"] == f"<@&{ADMIN_ROLE_ID}>\n1 member(s)"
        assert fields["Guardian"] == f"<@&{GUARDIAN_ROLE_ID}>\n1 member(s)"

    @pytest.mark.asyncio
    async def test_roles_view_missing_role(self, env):
        env.guild.roles = []
        cog = SettingsCog(env.bot, env.context)
        interaction = invoke(env, env.admin)

        await cog.settings_roles.callback(cog, interaction)

        fields = field_map(interaction.response.send_message.call_args.kwargs["embed"])
        assert fields["Verified"] == f"⚠️ Role {VERIFIED_ROLE_ID} not found"

    @pytest.mark.asyncio
    async def test_database_statistics(self, env):
        await add_report(env, "d" * 36, "A")
        await add_report(env, "e" * 36, "B", ReportStatus.RESOLVED)
        await env.context.timeouts.record(user_id=9, moderator_id=2, moderator_username="guardian", duration_minutes=5)
        await env.context.actions.record(admin_id=3, admin_username="admin", action_type=ActionType.BAN)
        cog = SettingsCog(env.bot, env.context)
        interaction = invoke(env, env.admin)

        await cog.settings_database.callback(cog, interaction)

        fields = field_map(interaction.followup.send.call_args.kwargs["embed"])
        assert fields["Total Reports"] == "2"
        assert fields["Pending"] == "1"
        assert fields["Resolved"] == "1"
        assert fields["Timeouts"] == "1"
        assert fields["Bans"] == "1"
        assert fields["Kicks"] == "0"

    @pytest.mark.asyncio
    async def test_guardian_cannot_view_settings(self, env):
        cog = SettingsCog(env.bot, env.context)
        interaction = invoke(env, env.guardian)

        await cog.settings_view.callback(cog, interaction)

        assert interaction.response.send_message.call_args.args[0].startswith("🚫")
