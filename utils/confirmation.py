"""Confirm/cancel gate in front of destructive commands.

A ``ConfirmationView`` belongs to one invocation: its buttons carry a random
per-flow token in their custom_id, only the member who ran the command may
press them, and the first accepted press decides the outcome. The waiting
command suspends in ``wait_for_outcome`` until a press arrives or the
deadline passes; other commands keep running meanwhile.
"""

import asyncio
import enum
import uuid
from typing import Optional

import discord
import structlog

logger = structlog.get_logger("confirmation")


class ConfirmationOutcome(enum.Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"


class ConfirmationView(discord.ui.View):
    def __init__(
        self,
        requester_id: int,
        deadline: float,
        confirm_label: str = "Confirm Delete",
        cancel_label: str = "Cancel",
        target_id: Optional[str] = None,
    ):
        # discord.py's own timeout only starts once the view is attached to a
        # message; the deadline is enforced by wait_for_outcome instead.
        super().__init__(timeout=None)
        self.requester_id = requester_id
        self.deadline = deadline
        self.token = uuid.uuid4().hex
        self.target_id = target_id
        self._outcome: asyncio.Future = asyncio.get_running_loop().create_future()

        suffix = f"{self.token}:{target_id}" if target_id else self.token

        self.confirm = discord.ui.Button(
            label=confirm_label,
            style=discord.ButtonStyle.danger,
            custom_id=f"confirm:{suffix}",
        )
        self.confirm.callback = self.confirm_callback
        self.add_item(self.confirm)

        self.cancel = discord.ui.Button(
            label=cancel_label,
            style=discord.ButtonStyle.secondary,
            custom_id=f"cancel:{suffix}",
        )
        self.cancel.callback = self.cancel_callback
        self.add_item(self.cancel)

    @property
    def resolved(self) -> bool:
        return self._outcome.done()

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        """Only the member who started the flow may answer it."""
        if interaction.user.id == self.requester_id:
            return True
        logger.info(
            "confirmation_foreign_press_ignored",
            token=self.token,
            user_id=interaction.user.id,
            requester_id=self.requester_id,
        )
        await interaction.response.send_message(
            "Only the person who ran this command can use these buttons.", ephemeral=True
        )
        return False

    async def confirm_callback(self, interaction: discord.Interaction) -> None:
        await self._resolve(interaction, ConfirmationOutcome.CONFIRMED)

    async def cancel_callback(self, interaction: discord.Interaction) -> None:
        await self._resolve(interaction, ConfirmationOutcome.CANCELLED)

    async def _resolve(self, interaction: discord.Interaction, outcome: ConfirmationOutcome) -> None:
        if interaction.user.id != self.requester_id or self.resolved:
            # Late or foreign presses just acknowledge the click
            if not interaction.response.is_done():
                await interaction.response.defer()
            return

        self._outcome.set_result(outcome)
        self._disable()
        self.stop()
        await interaction.response.defer()

    def _disable(self) -> None:
        for item in self.children:
            item.disabled = True

    async def wait_for_outcome(self) -> ConfirmationOutcome:
        """Suspend until a press is accepted or the deadline passes."""
        try:
            outcome = await asyncio.wait_for(asyncio.shield(self._outcome), timeout=self.deadline)
        except asyncio.TimeoutError:
            if not self._outcome.done():
                self._outcome.set_result(ConfirmationOutcome.TIMED_OUT)
            self._disable()
            self.stop()
            outcome = self._outcome.result()

        logger.info("confirmation_resolved", token=self.token, outcome=outcome.value)
        return outcome
