"""Best-effort side channels that follow a privileged action.

``AuditTrail`` writes admin_actions/user_timeouts rows, posts embeds to the
configured log channel, and sends direct messages. None of these may change
what the acting moderator is told: database failures are logged and reported
back as ``False``, while channel posts and DMs run as background tasks.
"""

from typing import Optional

import discord
import structlog

from models.tables.admin_action import ActionType
from utils.background import BackgroundTasks
from utils.exceptions import DatabaseError
from utils.repositories import AdminActionRepository, UserTimeoutRepository

logger = structlog.get_logger("audit")


class AuditTrail:
    def __init__(
        self,
        bot: discord.Client,
        actions: AdminActionRepository,
        timeouts: UserTimeoutRepository,
        tasks: BackgroundTasks,
        log_channel_id: Optional[int] = None,
    ) -> None:
        self.bot = bot
        self.actions = actions
        self.timeouts = timeouts
        self.tasks = tasks
        self.log_channel_id = log_channel_id

    async def record(
        self,
        actor: discord.abc.User,
        action_type: ActionType,
        target_id: Optional[str] = None,
        details: Optional[str] = None,
    ) -> bool:
        """Append an admin_actions row. Returns False if the write failed."""
        try:
            await self.actions.record(
                admin_id=actor.id,
                admin_username=str(actor),
                action_type=action_type,
                target_id=target_id,
                details=details,
            )
        except DatabaseError as e:
            logger.error(
                "admin_action_log_failed",
                action_type=action_type.value,
                target_id=target_id,
                error=str(e),
            )
            return False
        return True

    async def record_timeout(
        self,
        actor: discord.abc.User,
        target: discord.abc.User,
        duration_minutes: int,
        reason: str,
    ) -> bool:
        """Store a user_timeouts row plus its admin_actions entry."""
        try:
            await self.timeouts.record(
                user_id=target.id,
                moderator_id=actor.id,
                moderator_username=str(actor),
                duration_minutes=duration_minutes,
                reason=reason,
            )
        except DatabaseError as e:
            logger.error("timeout_log_failed", user_id=target.id, error=str(e))
            return False
        return True

    def post(self, embed: discord.Embed) -> None:
        """Send ``embed`` to the log channel in the background, if one is configured."""
        if self.log_channel_id is None:
            return
        self.tasks.spawn(self._post(embed), "log_channel_post", channel_id=self.log_channel_id)

    async def _post(self, embed: discord.Embed) -> None:
        channel = self.bot.get_channel(self.log_channel_id)
        if channel is None:
            channel = await self.bot.fetch_channel(self.log_channel_id)
        await channel.send(embed=embed)

    def notify(self, user: discord.abc.User, embed: discord.Embed) -> None:
        """DM ``user`` in the background."""
        self.tasks.spawn(user.send(embed=embed), "direct_message", user_id=user.id)

    async def notify_now(self, user: discord.abc.User, embed: discord.Embed) -> bool:
        """DM ``user`` and wait for delivery, for messages that must precede an action.

        Returns:
            Whether the message was delivered. Failure is only logged.
        """
        try:
            await user.send(embed=embed)
        except discord.HTTPException as e:
            logger.info("direct_message_failed", user_id=user.id, error=str(e))
            return False
        return True
