"""
Pytest configuration and fixtures for test isolation.

This module provides fixtures and configuration to ensure proper test isolation
and prevent test interference when running the full test suite.
"""

import logging
import os
import sys
from collections.abc import AsyncGenerator, Generator

import pytest
import pytest_asyncio
import structlog

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.dirname(os.path.dirname(__file__))))

from tests.fixtures import DatabaseFixture


@pytest.fixture(autouse=True)
def reset_environment() -> Generator[None, None, None]:
    """
    Reset environment variables between tests.
    """
    original_env = dict(os.environ)

    yield

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """
    Reset logging configuration between tests.
    """
    original_level = logging.getLogger().level
    original_handlers = logging.getLogger().handlers[:]

    yield

    logging.getLogger().setLevel(original_level)
    logging.getLogger().handlers = original_handlers
    structlog.contextvars.clear_contextvars()


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[DatabaseFixture, None]:
    """An in-memory database with every table created."""
    async with DatabaseFixture() as fixture:
        yield fixture
