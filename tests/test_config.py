"""
Tests for configuration loading.

These tests cover environment parsing, defaults, validation failures and the
SQLAlchemy URL built from the database settings.
"""

import logging
import os
import sys

import pytest

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.dirname(os.path.dirname(__file__))))

from config import DEFAULT_ALLOWED_FILE_TYPES, DEFAULT_MAX_FILE_SIZE, BotConfig, Environment, load_from_env

CONFIG_VARS = [
    "DISCORD_TOKEN", "CLIENT_ID", "GUILD_ID", "ENVIRONMENT", "LOG_LEVEL", "LOG_FORMAT", "LOGFILE",
    "DB_HOST", "DB_PORT", "DB_USER", "DB_PASSWORD", "DB_NAME", "DB_POOL_SIZE", "DB_SSL_CERT_DIR",
    "DATABASE_URL", "VIRUS_TOTAL_API_KEY", "SCAN_FAIL_OPEN", "MAX_FILE_SIZE", "ALLOWED_FILE_TYPES",
    "UPLOAD_DIR", "EXPORT_DIR", "VERIFIED_ROLE_ID", "GUARDIAN_ROLE_ID", "ADMIN_ROLE_ID",
    "OPEN_REPORTING", "VPN_DETECTION_ENABLED", "LOG_CHANNEL_ID",
]


@pytest.fixture
def env(monkeypatch, tmp_path):
    """A clean environment holding only the required variables."""
    for name in CONFIG_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DISCORD_TOKEN", "token-value")
    monkeypatch.setenv("DB_USER", "warden")
    monkeypatch.setenv("DB_PASSWORD", "hunter2")
    monkeypatch.setenv("DB_NAME", "warden")
    # A path with no file, so no developer .env leaks into the test
    return str(tmp_path / "missing.env")


class TestLoadFromEnv:
    def test_defaults(self, env):
        config = load_from_env(env)

        assert config.environment is Environment.DEVELOPMENT
        assert config.logging_level == logging.INFO
        assert config.host == "localhost"
        assert config.port == 5432
        assert config.db_pool_size == 10
        assert config.max_file_size == DEFAULT_MAX_FILE_SIZE == 8 * 1024 * 1024
        assert config.allowed_file_types == list(DEFAULT_ALLOWED_FILE_TYPES)
        assert config.upload_dir == "uploads"
        assert config.export_dir == "exports"
        assert config.scan_fail_open is False
        assert config.open_reporting is False
        assert config.vpn_detection_enabled is False
        assert config.verified_role_id is None

    def test_missing_required_variables_are_all_reported(self, env, monkeypatch):
        monkeypatch.delenv("DISCORD_TOKEN")
        monkeypatch.delenv("DB_PASSWORD")

        with pytest.raises(ValueError) as exc_info:
            load_from_env(env)

        message = str(exc_info.value)
        assert message.startswith("Missing required environment variables:")
        assert "DISCORD_TOKEN" in message
        assert "DB_PASSWORD" in message

    def test_parses_ids_and_flags(self, env, monkeypatch):
        monkeypatch.setenv("VERIFIED_ROLE_ID", "123456789012345678")
        monkeypatch.setenv("ADMIN_ROLE_ID", "223456789012345678")
        monkeypatch.setenv("OPEN_REPORTING", "true")
        monkeypatch.setenv("SCAN_FAIL_OPEN", "1")
        monkeypatch.setenv("ALLOWED_FILE_TYPES", "PNG, .jpg ,webp")

        config = load_from_env(env)

        assert config.verified_role_id == 123456789012345678
        assert config.admin_role_id == 223456789012345678
        assert config.open_reporting is True
        assert config.scan_fail_open is True
        assert config.allowed_file_types == ["png", "jpg", "webp"]

    def test_non_numeric_id_is_rejected(self, env, monkeypatch):
        monkeypatch.setenv("GUARDIAN_ROLE_ID", "guardians")

        with pytest.raises(ValueError):
            load_from_env(env)

    def test_pool_size_is_bounded(self, env, monkeypatch):
        monkeypatch.setenv("DB_POOL_SIZE", "50")

        with pytest.raises(ValueError, match="Configuration validation error"):
            load_from_env(env)

    def test_production_defaults_to_warning(self, env, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")

        config = load_from_env(env)

        assert config.environment is Environment.PRODUCTION
        assert config.logging_level == logging.WARNING


class TestBotConfig:
    def test_sqlalchemy_url_from_parts(self):
        config = BotConfig(
            bot_token="t", db_user="user", db_password="pw", database="db", host="db.internal", port=5433
        )
        assert config.sqlalchemy_url == "postgresql+asyncpg://user:pw@db.internal:5433/db"

    def test_database_url_takes_precedence(self):
        config = BotConfig(
            bot_token="t",
            db_user="user",
            db_password="pw",
            database="db",
            database_url="postgresql://other:pw@remote/db",
        )
        assert config.sqlalchemy_url.startswith("postgresql+asyncpg://other:pw@remote/db")

    def test_sensitive_fields_cover_secrets(self):
        sensitive = BotConfig.get_sensitive_fields()
        assert {"bot_token", "db_password", "virus_total_api_key"} <= sensitive

    def test_blank_token_is_rejected(self):
        with pytest.raises(ValueError):
            BotConfig(bot_token="  ", db_user="user", db_password="pw", database="db")
