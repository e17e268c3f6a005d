"""Pytest configuration and fixtures for integration tests against a real SQLite file."""

from collections.abc import AsyncGenerator

import pytest

from src.core import db_client
from src.core.module_registry import register_default_modules


@pytest.fixture
async def sqlite_db(clean_module_registry: None) -> AsyncGenerator[None, None]:
    """Create every module's tables in the per-test database file."""
    register_default_modules()
    await db_client.init_db()
    yield
    await db_client.close_connection()
