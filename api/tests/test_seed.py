"""Test creation of the initial admin account."""

from __future__ import annotations

from lounge import settings
from lounge.auth import verify_password
from lounge.seed import ensure_seed_data


def test_creates_admin_from_environment(storage, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_USERNAME", "principal")
    monkeypatch.setattr(settings, "ADMIN_PASSWORD", "chalkboard")

    ensure_seed_data(storage)

    admin = storage.get_user_by_username("principal")
    assert admin.is_admin
    assert admin.access_level == "full"
    assert verify_password("chalkboard", admin.password_hash)


def test_runs_once(storage, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_PASSWORD", "chalkboard")

    ensure_seed_data(storage)
    ensure_seed_data(storage)

    assert len(storage.list_users()) == 1


def test_skipped_without_password(storage, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_PASSWORD", None)

    ensure_seed_data(storage)

    assert storage.list_users() == []


def test_does_not_promote_existing_user(storage, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_USERNAME", "alice")
    monkeypatch.setattr(settings, "ADMIN_PASSWORD", "chalkboard")
    storage.create_user("alice", "hash", "Alice")

    ensure_seed_data(storage)

    assert not storage.get_user_by_username("alice").is_admin
