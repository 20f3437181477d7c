"""
Configuration module for the Warden bot.

This module provides a centralized configuration system with validation
and support for different environments (development, testing, production).
Values are read from the process environment (optionally seeded from a ``.env``
file) once at startup and handed to the rest of the bot as a ``BotConfig``
instance; nothing is loaded at import time.
"""

import logging
import os
from enum import Enum
from typing import ClassVar, List, Optional, Set

from pydantic import BaseModel, Field, field_validator


# Define environment types
class Environment(str, Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


# Define log format types
class LogFormat(str, Enum):
    JSON = "json"
    CONSOLE = "console"


DEFAULT_ALLOWED_FILE_TYPES = ["png", "jpg", "jpeg", "gif", "webp"]
DEFAULT_MAX_FILE_SIZE = 8 * 1024 * 1024

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


class BotConfig(BaseModel):
    """
    Configuration model with validation.

    Sensitive values are marked so they can be kept out of logs and out of the
    ``/settings view`` overview.
    """

    # Bot settings
    bot_token: str = Field(..., description="Discord bot token", json_schema_extra={"sensitive": True})
    client_id: Optional[str] = Field(None, description="Application (client) ID")
    guild_id: Optional[int] = Field(None, description="Guild commands are synced to; None syncs globally")
    environment: Environment = Field(Environment.DEVELOPMENT, description="Deployment environment")
    logging_level: int = Field(logging.INFO, description="Logging level")
    logfile: str = Field("warden", description="Log file name")
    log_format: LogFormat = Field(LogFormat.CONSOLE, description="Log output format (json or console)")

    # Database settings
    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    db_user: str = Field(..., description="Database user")
    db_password: str = Field(..., description="Database password", json_schema_extra={"sensitive": True})
    database: str = Field(..., description="Database name")
    db_pool_size: int = Field(10, description="Maximum number of pooled connections")
    db_ssl_cert_dir: Optional[str] = Field(None, description="Directory holding server-ca.pem/client-cert.pem/client-key.pem")
    database_url: Optional[str] = Field(
        None, description="Full SQLAlchemy URL, overrides the composed one", json_schema_extra={"sensitive": True}
    )

    # Upload and scanning settings
    virus_total_api_key: Optional[str] = Field(
        None, description="VirusTotal API key", json_schema_extra={"sensitive": True}
    )
    scan_fail_open: bool = Field(
        False, description="Treat screenshots as safe when the malware scanner is missing or unreachable"
    )
    max_file_size: int = Field(DEFAULT_MAX_FILE_SIZE, description="Maximum attachment size in bytes")
    allowed_file_types: List[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_FILE_TYPES),
        description="Allowed attachment extensions",
    )
    upload_dir: str = Field("uploads", description="Directory for stored screenshots")
    export_dir: str = Field("exports", description="Directory for transient CSV exports")

    # Role settings
    verified_role_id: Optional[int] = Field(None, description="Role allowed to file reports")
    guardian_role_id: Optional[int] = Field(None, description="Moderator role")
    admin_role_id: Optional[int] = Field(None, description="Administrator role")
    open_reporting: bool = Field(
        False, description="Treat every member as verified when no verified role is configured"
    )

    # Misc
    vpn_detection_enabled: bool = Field(False, description="Check reporter origin against a VPN lookup")
    log_channel_id: Optional[int] = Field(None, description="Channel receiving audit posts")

    _sensitive_fields: ClassVar[Set[str]] = {
        "bot_token",
        "db_password",
        "database_url",
        "virus_total_api_key",
    }

    _required_fields: ClassVar[Set[str]] = {
        "bot_token",
        "db_user",
        "db_password",
        "database",
    }

    @field_validator("bot_token")
    @classmethod
    def bot_token_must_not_be_empty(cls, v):
        """Validate that the bot token is not empty."""
        if not v or not v.strip():
            raise ValueError("Bot token must not be empty")
        return v.strip()

    @field_validator("host", "db_user", "db_password", "database")
    @classmethod
    def db_settings_must_not_be_empty(cls, v, info):
        """Validate that database settings are not empty."""
        if not v:
            raise ValueError(f"{info.field_name} must not be empty")
        return v

    @field_validator("db_pool_size")
    @classmethod
    def pool_size_must_be_bounded(cls, v):
        if not 1 <= v <= 15:
            raise ValueError("db_pool_size must be between 1 and 15")
        return v

    @field_validator("max_file_size")
    @classmethod
    def max_file_size_must_be_positive(cls, v):
        if v <= 0:
            raise ValueError("max_file_size must be positive")
        return v

    @field_validator("allowed_file_types")
    @classmethod
    def normalize_file_types(cls, v):
        """Lower-case the extensions and strip leading dots and whitespace."""
        types = [ext.strip().lstrip(".").lower() for ext in v if ext and ext.strip()]
        if not types:
            raise ValueError("allowed_file_types must list at least one extension")
        return types

    @property
    def sqlalchemy_url(self) -> str:
        """The async SQLAlchemy URL for the configured database."""
        if self.database_url:
            # Hosted providers hand out plain postgres:// URLs
            for scheme in ("postgres://", "postgresql://"):
                if self.database_url.startswith(scheme):
                    return "postgresql+asyncpg://" + self.database_url[len(scheme):]
            return self.database_url
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.host}:{self.port}/{self.database}"
        )

    @classmethod
    def get_sensitive_fields(cls) -> Set[str]:
        """Get the set of sensitive field names that should be handled securely."""
        return cls._sensitive_fields

    @classmethod
    def get_required_fields(cls) -> Set[str]:
        """Get the set of required field names."""
        return cls._required_fields


def _parse_int(name: str, value: Optional[str]) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Invalid {name} value: {value}. Must be an integer.")


def _parse_bool(name: str, value: Optional[str]) -> bool:
    normalized = (value or "").strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid {name} value: {value}. Must be true or false.")


def load_from_env(env_file: Optional[str] = None) -> BotConfig:
    """
    Load configuration from environment variables.

    This function loads configuration values from environment variables, with support
    for loading from a .env file. It reports every missing required variable at once
    and wraps validation failures with context.

    Args:
        env_file: Optional path to a .env file. Defaults to python-dotenv's lookup.

    Returns:
        BotConfig: A validated configuration object

    Raises:
        ValueError: If required environment variables are missing or invalid
    """
    from dotenv import load_dotenv

    load_dotenv(env_file)

    missing_vars = []

    def get_env(name, default=None, required=False):
        value = os.getenv(name, default)
        if required and (value is None or value == ""):
            missing_vars.append(name)
        return value

    bot_token = get_env("DISCORD_TOKEN", "", required=True)
    db_user = get_env("DB_USER", "", required=True)
    db_password = get_env("DB_PASSWORD", "", required=True)
    database = get_env("DB_NAME", "", required=True)

    if missing_vars:
        raise ValueError(
            f"Missing required environment variables: {', '.join(missing_vars)}"
        )

    try:
        environment = Environment(get_env("ENVIRONMENT", Environment.DEVELOPMENT.value))
    except ValueError:
        raise ValueError(f"Unknown environment: {os.getenv('ENVIRONMENT')}")

    log_level_name = get_env("LOG_LEVEL", "")
    if log_level_name:
        logging_level = logging.getLevelName(log_level_name.upper())
        if not isinstance(logging_level, int):
            raise ValueError(f"Invalid LOG_LEVEL value: {log_level_name}")
    elif environment == Environment.TESTING:
        logging_level = logging.DEBUG
    elif environment == Environment.PRODUCTION:
        logging_level = logging.WARNING
    else:
        logging_level = logging.INFO

    allowed_types = get_env("ALLOWED_FILE_TYPES", ",".join(DEFAULT_ALLOWED_FILE_TYPES))

    try:
        config = BotConfig(
            bot_token=bot_token,
            client_id=get_env("CLIENT_ID") or None,
            guild_id=_parse_int("GUILD_ID", get_env("GUILD_ID")),
            environment=environment,
            logging_level=logging_level,
            logfile=get_env("LOGFILE", "warden"),
            log_format=LogFormat(get_env("LOG_FORMAT", LogFormat.CONSOLE.value)),
            host=get_env("DB_HOST", "localhost"),
            port=_parse_int("DB_PORT", get_env("DB_PORT", "5432")),
            db_user=db_user,
            db_password=db_password,
            database=database,
            db_pool_size=_parse_int("DB_POOL_SIZE", get_env("DB_POOL_SIZE", "10")),
            db_ssl_cert_dir=get_env("DB_SSL_CERT_DIR") or None,
            database_url=get_env("DATABASE_URL") or None,
            virus_total_api_key=get_env("VIRUS_TOTAL_API_KEY") or None,
            scan_fail_open=_parse_bool("SCAN_FAIL_OPEN", get_env("SCAN_FAIL_OPEN")),
            max_file_size=_parse_int("MAX_FILE_SIZE", get_env("MAX_FILE_SIZE", str(DEFAULT_MAX_FILE_SIZE))),
            allowed_file_types=allowed_types.split(","),
            upload_dir=get_env("UPLOAD_DIR", "uploads"),
            export_dir=get_env("EXPORT_DIR", "exports"),
            verified_role_id=_parse_int("VERIFIED_ROLE_ID", get_env("VERIFIED_ROLE_ID")),
            guardian_role_id=_parse_int("GUARDIAN_ROLE_ID", get_env("GUARDIAN_ROLE_ID")),
            admin_role_id=_parse_int("ADMIN_ROLE_ID", get_env("ADMIN_ROLE_ID")),
            open_reporting=_parse_bool("OPEN_REPORTING", get_env("OPEN_REPORTING")),
            vpn_detection_enabled=_parse_bool("VPN_DETECTION_ENABLED", get_env("VPN_DETECTION_ENABLED")),
            log_channel_id=_parse_int("LOG_CHANNEL_ID", get_env("LOG_CHANNEL_ID")),
        )
    except ValueError as e:
        raise ValueError(f"Configuration validation error: {e}")

    if not config.virus_total_api_key:
        logging.warning(
            "No VIRUS_TOTAL_API_KEY provided. Screenshots %s.",
            "will not be scanned" if config.scan_fail_open else "will be rejected until one is set",
        )
    if config.verified_role_id is None and not config.open_reporting:
        logging.warning(
            "No VERIFIED_ROLE_ID provided and OPEN_REPORTING is off. Only guardians and admins can file reports."
        )

    return config
