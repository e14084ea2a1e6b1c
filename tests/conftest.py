import os
from pathlib import Path

import pytest

from creditadmin.core.config import Settings
from fakes import FakeUser, InMemoryBalanceStore

# Use test DB
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017")
os.environ.setdefault("MONGODB_DB_NAME", "creditadmin_test")


@pytest.fixture
def users() -> list[FakeUser]:
    return [
        FakeUser(email="ada@example.com", name="Ada"),
        FakeUser(email="bob@example.com", username="bob"),
        FakeUser(email="cy@example.com"),
    ]


@pytest.fixture
def store(users) -> InMemoryBalanceStore:
    return InMemoryBalanceStore(users)


@pytest.fixture
def enabled_settings(tmp_path: Path) -> Settings:
    return Settings(BALANCE_ENABLED=True, CONFIG_PATH=str(tmp_path / "missing.yaml"))


@pytest.fixture
def disabled_settings(tmp_path: Path) -> Settings:
    return Settings(BALANCE_ENABLED=False, CONFIG_PATH=str(tmp_path / "missing.yaml"))
