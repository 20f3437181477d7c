"""
Error handling utilities for the Warden bot.

Command callbacks are wrapped in ``handle_interaction_errors``. The wrapper
turns bot exceptions into short ephemeral replies, translates the Discord API
error codes moderators actually run into, and logs everything else with full
context. Messages shown to users never contain secrets, paths or addresses.
"""

import functools
import logging
import re
import traceback
from typing import Any, Callable, Coroutine, Dict, List, Optional, Pattern, Set, Type, TypeVar

import discord
import structlog
from discord import app_commands

from utils.exceptions import (
    AttachmentError,
    ConfigurationError,
    ConnectionError,
    DatabaseError,
    DiscordActionError,
    ExternalServiceError,
    MalwareDetectedError,
    MissingConfigurationError,
    PermissionError,
    QueryError,
    ResourceNotFoundError,
    RolePermissionError,
    ServiceUnavailableError,
    UserInputError,
    ValidationError,
    WardenError,
)

CommandT = TypeVar("CommandT", bound=Callable[..., Coroutine[Any, Any, Any]])

logger = structlog.get_logger("error_handling")

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. The bot administrators have been notified."

# Patterns for sensitive information that should be redacted
SENSITIVE_PATTERNS: List[Pattern] = [
    # API keys and tokens
    re.compile(
        r'(api[_-]?key|apikey|token|secret|password|auth)[=:]\s*["\'`]?([a-zA-Z0-9_\-\.]{20,})["\'`]?',
        re.IGNORECASE,
    ),
    # Discord tokens
    re.compile(r"[MN][A-Za-z\d]{23}\.[\w-]{6}\.[\w-]{27}"),
    # Database connection strings
    re.compile(r"(postgres(?:ql)?(?:\+asyncpg)?|mysql|sqlite(?:\+aiosqlite)?)://[^\s]+", re.IGNORECASE),
    # IP addresses
    re.compile(r"\b\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}\b"),
    # File paths with at least two segments
    re.compile(r'[A-Za-z]:\\(?:[^\\/:*?"<>|\r\n]+\\)+[^\\/:*?"<>|\r\n]*'),
    re.compile(r"(?:/[\w.\-]+){2,}"),
]

# Error types whose own message is never shown to users
SENSITIVE_ERROR_TYPES: Set[Type[Exception]] = {
    DatabaseError,
    QueryError,
    ConnectionError,
    ConfigurationError,
}

# Most specific types first; the first isinstance match wins
ERROR_RESPONSES: Dict[Type[Exception], Dict[str, Any]] = {
    AttachmentError: {
        "message": "❌ Screenshot rejected: {error.message}",
        "log_level": logging.INFO,
        "ephemeral": True,
    },
    ValidationError: {
        "message": "❌ {error.message}",
        "log_level": logging.INFO,
        "ephemeral": True,
    },
    UserInputError: {
        "message": "❌ {error.message}",
        "log_level": logging.INFO,
        "ephemeral": True,
    },
    RolePermissionError: {
        "message": "🚫 You don't have permission to use this command.",
        "log_level": logging.INFO,
        "ephemeral": True,
    },
    PermissionError: {
        "message": "🚫 {error.message}",
        "log_level": logging.INFO,
        "ephemeral": True,
    },
    ResourceNotFoundError: {
        "message": "❌ {error.message}",
        "log_level": logging.INFO,
        "ephemeral": True,
    },
    MalwareDetectedError: {
        "message": "❌ Security scan failed: {error.message}. Report not submitted.",
        "log_level": logging.WARNING,
        "ephemeral": True,
    },
    DiscordActionError: {
        "message": "❌ {error.message}",
        "log_level": logging.WARNING,
        "ephemeral": True,
    },
    ServiceUnavailableError: {
        "message": "⚠️ {error.message}. Please try again later.",
        "log_level": logging.ERROR,
        "ephemeral": True,
    },
    ExternalServiceError: {
        "message": "⚠️ {error.message}. Please try again later.",
        "log_level": logging.ERROR,
        "ephemeral": True,
    },
    MissingConfigurationError: {
        "message": "⚠️ {error.message}. Ask an administrator to update the bot configuration.",
        "log_level": logging.WARNING,
        "ephemeral": True,
    },
    DatabaseError: {
        "message": "⚠️ A database error occurred. Please try again later.",
        "log_level": logging.ERROR,
        "ephemeral": True,
    },
    ConfigurationError: {
        "message": "⚠️ The bot is misconfigured. The bot administrators have been notified.",
        "log_level": logging.ERROR,
        "ephemeral": True,
    },
    Exception: {
        "message": GENERIC_ERROR_MESSAGE,
        "log_level": logging.ERROR,
        "ephemeral": True,
    },
}

# Discord JSON error codes with a friendlier explanation
DISCORD_ERROR_MESSAGES: Dict[int, str] = {
    50013: "I don't have permission to {action}.",
    50001: "I don't have access to do that.",
    10007: "That user is not a member of this server.",
    10013: "Unknown user.",
    10011: "That role no longer exists.",
    10026: "That user is not banned.",
    50007: "I can't send direct messages to that user.",
}


def detect_sensitive_info(text: str) -> bool:
    """Return True if ``text`` matches any of ``SENSITIVE_PATTERNS``."""
    if not text:
        return False
    return any(pattern.search(text) for pattern in SENSITIVE_PATTERNS)


def redact_sensitive_info(text: str) -> str:
    """Replace anything matching ``SENSITIVE_PATTERNS`` with ``[REDACTED]``."""
    if not text:
        return text
    for pattern in SENSITIVE_PATTERNS:
        text = pattern.sub("[REDACTED]", text)
    return text


def describe_discord_error(error: discord.HTTPException, action: str = "do that") -> str:
    """Translate a Discord API error into text safe to show the invoking member."""
    template = DISCORD_ERROR_MESSAGES.get(getattr(error, "code", 0))
    if template:
        return template.format(action=action)
    if isinstance(error, discord.Forbidden):
        return f"I don't have permission to {action}."
    if isinstance(error, discord.NotFound):
        return "That no longer exists."
    return f"Discord refused the request to {action}. Please try again later."


def get_error_response(error: Exception) -> Dict[str, Any]:
    """Get the response configuration for an exception.

    Returns:
        A copy of the matching ``ERROR_RESPONSES`` entry with ``message``
        formatted for the user.
    """
    if isinstance(error, discord.HTTPException):
        return {
            "message": f"❌ {describe_discord_error(error)}",
            "log_level": logging.WARNING,
            "ephemeral": True,
        }

    for error_type, response in ERROR_RESPONSES.items():
        if isinstance(error, error_type):
            response = response.copy()
            break
    else:
        response = ERROR_RESPONSES[Exception].copy()

    if type(error) in SENSITIVE_ERROR_TYPES and "{error" in response["message"]:
        response["message"] = GENERIC_ERROR_MESSAGE
        return response

    try:
        message = response["message"].format(error=error)
    except (KeyError, AttributeError, IndexError):
        message = GENERIC_ERROR_MESSAGE

    if detect_sensitive_info(message):
        message = GENERIC_ERROR_MESSAGE
    response["message"] = message
    return response


def log_error(
    error: Exception,
    command_name: str,
    user_id: Optional[int],
    log_level: int = logging.ERROR,
    guild_id: Optional[int] = None,
    channel_id: Optional[int] = None,
    **context: Any,
) -> None:
    """Log an error with standardized context.

    Unexpected (non-bot) exceptions also get their traceback logged.
    """
    fields = {
        "command": command_name,
        "user_id": user_id,
        "guild_id": guild_id,
        "channel_id": channel_id,
        "error_type": type(error).__name__,
        "error": redact_sensitive_info(getattr(error, "message", str(error))),
        **context,
    }

    if error.__cause__ is not None:
        fields["cause_type"] = type(error.__cause__).__name__
        fields["cause"] = redact_sensitive_info(str(error.__cause__))

    if not isinstance(error, (WardenError, discord.HTTPException)):
        fields["traceback"] = redact_sensitive_info(
            "".join(traceback.format_exception(type(error), error, error.__traceback__))
        )

    logger.log(log_level, "command_error", **fields)


async def send_error(interaction: discord.Interaction, message: str, ephemeral: bool = True) -> None:
    """Reply with ``message`` whether or not the interaction was already acknowledged."""
    try:
        if interaction.response.is_done():
            await interaction.followup.send(message, ephemeral=ephemeral)
        else:
            await interaction.response.send_message(message, ephemeral=ephemeral)
    except discord.HTTPException as e:
        logger.error("error_reply_failed", error=str(e), error_type=type(e).__name__)


def handle_interaction_errors(func: CommandT) -> CommandT:
    """Decorator for application command callbacks to standardize error handling.

    This decorator catches exceptions raised by application command callbacks and
    replies with the message configured in ``ERROR_RESPONSES``.
    """

    @functools.wraps(func)
    async def wrapper(self, interaction: discord.Interaction, *args, **kwargs):
        try:
            return await func(self, interaction, *args, **kwargs)
        except Exception as error:
            response = get_error_response(error)
            await send_error(interaction, response["message"], response.get("ephemeral", True))
            log_error(
                error=error,
                command_name=func.__name__,
                user_id=interaction.user.id,
                log_level=response.get("log_level", logging.ERROR),
                guild_id=interaction.guild.id if interaction.guild else None,
                channel_id=interaction.channel.id if interaction.channel else None,
            )

    return wrapper


async def handle_app_command_error(
    interaction: discord.Interaction, error: app_commands.AppCommandError
) -> None:
    """Tree-level handler for errors that escape ``handle_interaction_errors``.

    These are mostly discord.py's own check failures, raised before a command
    callback runs.
    """
    if isinstance(error, app_commands.CommandInvokeError):
        error = error.original

    if isinstance(error, app_commands.CommandOnCooldown):
        message = f"⏳ This command is on cooldown. Try again in {error.retry_after:.0f}s."
        log_level = logging.INFO
    elif isinstance(error, app_commands.BotMissingPermissions):
        missing = ", ".join(error.missing_permissions)
        message = f"⚠️ I'm missing permissions: {missing}"
        log_level = logging.WARNING
    elif isinstance(error, app_commands.CheckFailure):
        message = "🚫 You don't have permission to use this command."
        log_level = logging.INFO
    else:
        response = get_error_response(error)
        message = response["message"]
        log_level = response["log_level"]

    await send_error(interaction, message)
    log_error(
        error=error,
        command_name=interaction.command.name if interaction.command else "unknown",
        user_id=interaction.user.id if interaction.user else None,
        log_level=log_level,
        guild_id=interaction.guild.id if interaction.guild else None,
        channel_id=interaction.channel.id if interaction.channel else None,
    )
