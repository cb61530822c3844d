"""Unit tests for main.py -- the init-db and create-admin commands."""

from auth.store import UserStore
from auth.tokens import authenticate_user
from main import create_admin, init_db


def _url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'cli.db'}"


def test_create_admin_with_mixed_case_email_can_log_in(tmp_path) -> None:
    url = _url(tmp_path)
    init_db(url)
    assert create_admin(url, "Ops.Admin@Example.com", "Ops Admin", "opspass1") == 0

    store = UserStore(url)
    try:
        user = authenticate_user(store, "Ops.Admin@Example.com", "opspass1")
        assert user is not None
        assert user.email == "ops.admin@example.com"
        assert user.role_name == "Admin"
    finally:
        store.close()


def test_create_admin_twice_fails(tmp_path) -> None:
    url = _url(tmp_path)
    assert create_admin(url, "admin@example.com", "Site Admin", "adminpass1") == 0
    assert create_admin(url, "ADMIN@example.com", "Site Admin", "adminpass1") == 1


def test_create_admin_short_password(tmp_path) -> None:
    assert create_admin(_url(tmp_path), "admin@example.com", "Site Admin", "short") == 1
