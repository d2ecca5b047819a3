from __future__ import annotations

import os
from typing import Callable, Generator

# Must be set before lounge.auth is imported
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256")
os.environ["STORAGE_BACKEND"] = "memory"
os.environ.pop("REDIS_URL", None)
os.environ.pop("ADMIN_PASSWORD", None)
os.environ.pop("DATA_DIR", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from lounge import models  # noqa: F401  registers tables on Base.metadata
from lounge import records
from lounge.auth import create_access_token, hash_password, pwd_context
from lounge.db import Base, make_session_factory
from lounge.deps import configure_storage
from lounge.main import app
from lounge.state import get_app_state
from lounge.storage.base import Storage
from lounge.storage.database import DatabaseStorage
from lounge.storage.memory import MemStorage

# Minimum bcrypt cost keeps the suite fast
pwd_context.update(bcrypt__rounds=4)

PASSWORD = "password123"


@pytest.fixture()
def storage() -> MemStorage:
    """Fresh in-memory storage, not persisted."""
    return MemStorage()


@pytest.fixture()
def db_storage() -> Generator[DatabaseStorage, None, None]:
    """DatabaseStorage on a private in-memory SQLite database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    try:
        yield DatabaseStorage(make_session_factory(engine))
    finally:
        engine.dispose()


@pytest.fixture(autouse=True)
def reset_screen_lock() -> Generator[None, None, None]:
    yield
    get_app_state().unlock_for_all()


@pytest.fixture()
def client(storage: MemStorage) -> Generator[TestClient, None, None]:
    configure_storage(storage)
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        configure_storage(None)


@pytest.fixture()
def make_user(storage: MemStorage) -> Callable[..., records.User]:
    def _make_user(username: str, role: str = "user", full_name: str | None = None) -> records.User:
        return storage.create_user(
            username=username,
            password_hash=hash_password(PASSWORD),
            full_name=full_name or username.title(),
            role=role,
            access_level="full" if role == "admin" else "basic",
        )

    return _make_user


@pytest.fixture()
def admin_user(make_user) -> records.User:
    return make_user("admin", role="admin", full_name="Administrator")


@pytest.fixture()
def test_user(make_user) -> records.User:
    return make_user("alice", full_name="Alice Smith")


@pytest.fixture()
def other_user(make_user) -> records.User:
    return make_user("bob", full_name="Bob Jones")


def auth_headers(user: records.User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture()
def admin_headers(admin_user: records.User) -> dict[str, str]:
    return auth_headers(admin_user)


@pytest.fixture()
def user_headers(test_user: records.User) -> dict[str, str]:
    return auth_headers(test_user)


@pytest.fixture(params=["memory", "database"])
def any_storage(request, storage: MemStorage, db_storage: DatabaseStorage) -> Storage:
    """Runs a test against both backends."""
    return storage if request.param == "memory" else db_storage


@pytest.fixture()
def headers_for() -> Callable[[records.User], dict[str, str]]:
    return auth_headers
