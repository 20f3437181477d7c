"""Repository for the admin action audit log."""

from collections.abc import Sequence
from typing import Iterable, Optional

from sqlalchemy import func, select

from models.tables.admin_action import ActionType, AdminAction
from utils.repository import BaseRepository, SessionMaker


class AdminActionRepository(BaseRepository[AdminAction, int]):
    """Append-only access to admin_actions. There is no update or delete."""

    def __init__(self, session_maker: SessionMaker) -> None:
        super().__init__(session_maker, AdminAction)

    async def record(
        self,
        admin_id: int,
        admin_username: str,
        action_type: ActionType | str,
        target_id: Optional[str] = None,
        details: Optional[str] = None,
    ) -> AdminAction:
        entry = AdminAction(
            admin_id=admin_id,
            admin_username=admin_username,
            action_type=action_type.value if isinstance(action_type, ActionType) else action_type,
            target_id=str(target_id) if target_id is not None else None,
            details=details,
        )
        return await self.create(entry)

    async def action_counts(self, kinds: Iterable[ActionType]) -> dict[ActionType, int]:
        """Number of logged actions for each of ``kinds``."""
        kinds = list(kinds)
        counts = {kind: 0 for kind in kinds}
        async with self.session("action_counts") as session:
            result = await session.execute(
                select(AdminAction.action_type, func.count())
                .where(AdminAction.action_type.in_([kind.value for kind in kinds]))
                .group_by(AdminAction.action_type)
            )
            for action_type, total in result.all():
                counts[ActionType(action_type)] = total
        return counts

    async def all_actions(self) -> Sequence[AdminAction]:
        return await self.get_all(AdminAction.created_at.asc(), AdminAction.id.asc())
