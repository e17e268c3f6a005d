"""Pytest configuration and shared fixtures."""

from collections.abc import Generator
from pathlib import Path

import pytest

from src.core import module_registry
from src.core.config import settings
from src.domain.user import User, UserRole
from tests.unit.mocks import make_user


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Point the database at a temporary file and switch optional integrations off."""
    monkeypatch.setattr(settings, "sqlite_db_path", str(tmp_path / "tasklane-test.db"))
    monkeypatch.setattr(settings, "notification_webhook_url", None)
    monkeypatch.setattr(settings, "performance_exclude_patterns", [])


@pytest.fixture
def clean_module_registry() -> Generator[None, None, None]:
    """Give the test an empty module registry and restore the previous one afterwards."""
    saved = module_registry.get_modules()
    module_registry.unregister_all()
    yield
    module_registry.unregister_all()
    for module in saved.values():
        module_registry.register_module(module)


@pytest.fixture
def admin() -> User:
    return make_user(UserRole.ADMIN)


@pytest.fixture
def manager() -> User:
    return make_user(UserRole.PROJECT_MANAGER)


@pytest.fixture
def developer() -> User:
    return make_user(UserRole.DEVELOPER)


@pytest.fixture
def other_developer() -> User:
    return make_user(UserRole.DEVELOPER, name="Other Developer")


@pytest.fixture
def viewer() -> User:
    return make_user(UserRole.VIEWER)
