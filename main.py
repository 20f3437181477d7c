import asyncio
import signal
import sys
from collections.abc import Sequence
from typing import Optional

import aiohttp
import discord
import structlog
from discord.ext import commands

from config import BotConfig, load_from_env
from utils.command_registry import extensions, verify_registry
from utils.context import BotContext
from utils.error_handling import handle_app_command_error
from utils.exceptions import DatabaseError
from utils.logging import init_logging
from utils.sqlalchemy_db import check_connection, create_engine, create_session_factory, init_database

SHUTDOWN_DRAIN_TIMEOUT = 10.0
PRESENCE = discord.Activity(type=discord.ActivityType.watching, name="for scam reports | /report")


class Warden(commands.Bot):
    def __init__(
            self,
            *args,
            initial_extensions: Sequence[str],
            services: BotContext,
            **kwargs
    ):
        super().__init__(*args, **kwargs)
        self.initial_extensions = initial_extensions
        self.services = services
        self.logger = structlog.get_logger("warden")
        self.shutdown_task: Optional[asyncio.Task] = None

    async def setup_hook(self) -> None:
        # A cog that fails to load would leave its commands unregistered, so
        # loading errors propagate and stop startup
        for extension in self.initial_extensions:
            await self.load_extension(extension)
            self.logger.info("extension_loaded", extension=extension)

        verify_registry(self.tree)
        self.tree.error(handle_app_command_error)

    async def on_ready(self):
        await self.change_presence(activity=PRESENCE)
        self.logger.info(
            "bot_ready",
            user=str(self.user),
            user_id=self.user.id,
            guilds=len(self.guilds),
        )

    async def close(self) -> None:
        self.logger.info("bot_closing", background_tasks=len(self.services.tasks))
        await self.services.tasks.drain(timeout=SHUTDOWN_DRAIN_TIMEOUT)
        await super().close()


def build_intents() -> discord.Intents:
    intents = discord.Intents.default()
    # Role member counts and top-role comparisons need the member cache
    intents.members = True
    return intents


async def main() -> int:
    try:
        config: BotConfig = load_from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    logger = init_logging(config.logging_level, config.logfile, config.log_format.value)
    logger.info("logging_started", environment=config.environment.value)

    engine = create_engine(config)
    try:
        await check_connection(engine)
        await init_database(engine)
    except DatabaseError as e:
        logger.critical("database_startup_failed", error=str(e))
        await engine.dispose()
        return 1

    try:
        async with aiohttp.ClientSession() as http_session:
            services = BotContext.build(config, create_session_factory(engine), http_session)
            async with Warden(
                    commands.when_mentioned,
                    initial_extensions=extensions(),
                    services=services,
                    intents=build_intents(),
            ) as bot:
                loop = asyncio.get_running_loop()
                for sig in (signal.SIGINT, signal.SIGTERM):
                    try:
                        loop.add_signal_handler(sig, lambda s=sig: _request_shutdown(bot, s))
                    except NotImplementedError:
                        # Windows event loops have no signal handler support
                        pass
                await bot.start(config.bot_token)
    finally:
        await engine.dispose()
        logger.info("shutdown_complete")
    return 0


def _request_shutdown(bot: Warden, sig: signal.Signals) -> None:
    bot.logger.info("shutdown_requested", signal=sig.name)
    # A second signal while closing is a no-op
    if bot.shutdown_task is None:
        bot.shutdown_task = asyncio.create_task(bot.close())


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
