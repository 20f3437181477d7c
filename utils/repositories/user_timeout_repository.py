"""Repository for user timeout records."""

from collections.abc import Sequence
from typing import Optional

from models.tables.admin_action import ActionType, AdminAction
from models.tables.user_timeout import UserTimeout
from utils.repository import BaseRepository, SessionMaker


class UserTimeoutRepository(BaseRepository[UserTimeout, int]):
    def __init__(self, session_maker: SessionMaker) -> None:
        super().__init__(session_maker, UserTimeout)

    async def record(
        self,
        user_id: int,
        moderator_id: int,
        moderator_username: str,
        duration_minutes: int,
        reason: Optional[str] = None,
    ) -> UserTimeout:
        """Store a timeout together with its admin_actions entry in one transaction."""
        timeout = UserTimeout(
            user_id=user_id,
            moderator_id=moderator_id,
            duration_minutes=duration_minutes,
            reason=reason,
        )
        action = AdminAction(
            admin_id=moderator_id,
            admin_username=moderator_username,
            action_type=ActionType.TIMEOUT.value,
            target_id=str(user_id),
            details=f"Duration: {duration_minutes} minutes, Reason: {reason}",
        )
        async with self.session("record") as session:
            session.add_all([timeout, action])
            await session.commit()
            await session.refresh(timeout)
            return timeout

    async def all_timeouts(self) -> Sequence[UserTimeout]:
        return await self.get_all(UserTimeout.created_at.asc(), UserTimeout.id.asc())
