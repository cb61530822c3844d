"""
auth/models.py -- Domain dataclasses for authentication and access entities.

Pattern: Data class (pure data container, zero logic). Mirrors tracker/models.py
-- dataclasses own domain shape; stores and routes do the work.

Layer rule: no imports from api/, tracker/, or storage/.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class User:
    """A person who can log in.

    password_hash is never serialized: the API response models omit it.
    role_name is joined from roles on every read so callers never need a
    second lookup to build token claims.
    """

    name: str
    email: str
    role_id: int
    id: int | None = None
    password_hash: str | None = None
    role_name: str | None = None
    is_active: bool = True
    last_login: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    deleted_at: str | None = None
    deleted_by: int | None = None


@dataclass
class Role:
    name: str
    id: int | None = None
    description: str | None = None
    is_active: bool = True
    created_at: str | None = None
    updated_at: str | None = None
    permissions: list[RolePermission] = field(default_factory=list)


@dataclass
class Page:
    """A navigable screen of the client application, the unit of permission grants."""

    name: str
    path: str
    id: int | None = None
    description: str | None = None
    icon: str | None = None
    display_order: int = 0
    is_active: bool = True
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class Permission:
    """An action verb ("view", "create", ...) that can be granted on a Page."""

    name: str
    id: int | None = None
    description: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class RolePermission:
    role_id: int
    page_id: int
    permission_id: int
    id: int | None = None
    role_name: str | None = None
    page_name: str | None = None
    page_path: str | None = None
    permission_name: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Claims:
    """The verified identity carried by an access token.

    Self-contained: building it requires no database lookup. role_name is
    the single canonical role field used by every authorization check.
    """

    user_id: int
    email: str
    role_id: int
    role_name: str
    name: str
