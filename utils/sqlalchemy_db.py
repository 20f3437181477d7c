"""SQLAlchemy database connection and session management."""

import os
import ssl
from typing import Optional

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

import models.tables  # noqa: F401  registers every table on Base.metadata
from models.base import Base
from utils.exceptions import ConnectionError, DatabaseError

logger = structlog.get_logger("database")


def create_ssl_context(cert_dir: str) -> ssl.SSLContext:
    """Create SSL context for database connection."""
    context = ssl.create_default_context()
    context.check_hostname = False
    context.load_verify_locations(os.path.join(cert_dir, "server-ca.pem"))
    context.load_cert_chain(
        os.path.join(cert_dir, "client-cert.pem"),
        os.path.join(cert_dir, "client-key.pem"),
    )
    return context


def create_engine(config, url: Optional[str] = None) -> AsyncEngine:
    """Create the async engine for ``config``.

    The pool is capped at ``config.db_pool_size`` with no overflow, so at most
    that many commands hold a connection at once; the rest wait up to 30s.
    """
    url = url or config.sqlalchemy_url
    connect_args = {}
    if config.db_ssl_cert_dir:
        connect_args["ssl"] = create_ssl_context(config.db_ssl_cert_dir)

    return create_async_engine(
        url,
        connect_args=connect_args,
        echo=False,
        pool_size=config.db_pool_size,
        max_overflow=0,
        pool_timeout=30,
        pool_recycle=300,
        pool_pre_ping=True,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def check_connection(engine: AsyncEngine) -> None:
    """Run a trivial query, raising ``ConnectionError`` if the database is unreachable."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.error("database_connection_failed", error=str(e), error_type=type(e).__name__)
        raise ConnectionError() from e
    logger.info("database_connection_ok")


async def init_database(engine: AsyncEngine) -> None:
    """Create any missing tables and indexes."""
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except SQLAlchemyError as e:
        logger.error("database_init_failed", error=str(e), error_type=type(e).__name__)
        raise DatabaseError("Failed to initialize database tables") from e
    logger.info("database_tables_initialized", tables=sorted(Base.metadata.tables))
