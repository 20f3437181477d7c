"""Quick script to sync slash commands to Discord.
This script mirrors the main bot setup so every cog loads with its services.
No database connection is opened; the engine stays idle until a query runs.
Run this locally with the bot token and database env vars configured.
"""

import asyncio
import os
import platform
import sys

import aiohttp
import discord
from discord.ext import commands

from config import load_from_env
from main import Warden, build_intents
from utils.command_registry import extensions
from utils.context import BotContext
from utils.logging import init_logging
from utils.sqlalchemy_db import create_engine, create_session_factory


def get_build_info() -> dict[str, str]:
    return {
        "python": platform.python_version(),
        "discord": discord.__version__,
    }


def _format_option(option, indent: str = "  ") -> list[str]:
    option_type = getattr(option, "type", "unknown")
    required = getattr(option, "required", None)
    choices = getattr(option, "choices", None)
    required_suffix = f", required={required}" if required is not None else ""
    lines = [f"{indent}- {option.name} (type={option_type}{required_suffix})"]
    if choices:
        choice_items = ", ".join(f"{choice.name}={choice.value}" for choice in choices)
        lines.append(f"{indent}  choices: {choice_items}")
    return lines


def _format_local_command(command, indent: str = "") -> list[str]:
    is_group = bool(getattr(command, "commands", None))
    lines = [f"{indent}- {command.name} ({'group' if is_group else 'command'})"]
    for param in getattr(command, "parameters", None) or []:
        lines.extend(_format_option(param, indent=indent + "  "))
    if is_group:
        for sub in command.commands:
            lines.extend(_format_local_command(sub, indent=indent + "  "))
    return lines


def dump_local_commands(bot: commands.Bot) -> None:
    print("Local commands:")
    for cmd in bot.tree.get_commands():
        for line in _format_local_command(cmd):
            print(line)


async def main() -> int:
    try:
        config = load_from_env()
    except ValueError as e:
        print(f"[FAIL] {e}")
        return 1

    init_logging(config.logging_level, None, config.log_format.value)
    build = get_build_info()
    print(f"Build info: python={build['python']} discord={build['discord']}")

    engine = create_engine(config)
    clear_global = os.getenv("CLEAR_GLOBAL_COMMANDS") == "1"
    try:
        async with aiohttp.ClientSession() as http_session:
            services = BotContext.build(config, create_session_factory(engine), http_session)
            async with Warden(
                    commands.when_mentioned,
                    initial_extensions=extensions(),
                    services=services,
                    intents=build_intents(),
            ) as bot:
                # login() runs setup_hook, which loads and verifies every cog
                await bot.login(config.bot_token)
                if os.getenv("DUMP_LOCAL_COMMANDS") == "1":
                    dump_local_commands(bot)

                if config.guild_id:
                    guild = discord.Object(id=config.guild_id)
                    bot.tree.copy_global_to(guild=guild)
                    synced = await bot.tree.sync(guild=guild)
                    print(f"[OK] Synced {len(synced)} commands to guild {config.guild_id}")
                    if clear_global:
                        bot.tree.clear_commands(guild=None)
                        await bot.tree.sync()
                        print("[OK] Cleared global commands")
                else:
                    synced = await bot.tree.sync()
                    print(f"[OK] Synced {len(synced)} global commands")
    except discord.HTTPException as e:
        print(f"[FAIL] Discord rejected the sync: {e}")
        return 1
    finally:
        await engine.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
