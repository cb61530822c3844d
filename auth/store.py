"""
auth/store.py -- SQLAlchemy Core persistence layer for users and access control.

Pattern: Repository + Data Mapper (same as tracker/store.py).
UserStore is the facade; one core.repository.Repository subclass per table
does the SQL, and row_to_model maps rows to the dataclasses in auth/models.py.
Route and dependency code never touches SQL directly.

Tables:
  users             soft delete; role_name joined from roles on every read
  roles             hard delete; refused while users still reference the role
  pages             hard delete
  permissions       hard delete
  role_permissions  (role, page, permission) grants; replaced as a whole set

Startup seeding: the four built-in roles (Admin, Encoder, Auditor, Viewer) are
inserted if missing. Seeding is idempotent -- safe on every startup.

Security:
  All queries use bound parameters. Password hashes never leave this module
  except through authenticate_user() in auth/tokens.py.
  Emails are case-insensitive: every write and lookup goes through
  normalize_email().

Layer rule: no imports from api/, tracker/, or storage/.
"""

from __future__ import annotations

import logging

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import Page, Permission, Role, RolePermission, User
from auth.policy import ROLES
from auth.tokens import hash_password, verify_password
from core.config import get_settings
from core.database import make_engine, now_iso, soft_delete_columns, timestamp_columns
from core.errors import Conflict, InvalidState, NotFound, UnknownReference, ValidationError
from core.repository import Repository, row_to_model

logger = logging.getLogger("auditmonitor.auth")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_roles = Table(
    "roles",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(50), nullable=False, unique=True),
    Column("description", Text),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    *timestamp_columns(),
)

_pages = Table(
    "pages",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False, unique=True),
    Column("path", String(255), nullable=False, unique=True),
    Column("description", Text),
    Column("icon", String(50)),
    Column("display_order", Integer, nullable=False, server_default="0"),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    *timestamp_columns(),
)

_permissions = Table(
    "permissions",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(50), nullable=False, unique=True),
    Column("description", Text),
    *timestamp_columns(),
)

_role_permissions = Table(
    "role_permissions",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False),
    Column("page_id", Integer, ForeignKey("pages.id", ondelete="CASCADE"), nullable=False),
    Column("permission_id", Integer, ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False),
    *timestamp_columns(),
    UniqueConstraint("role_id", "page_id", "permission_id"),
)

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("role_id", Integer, ForeignKey("roles.id"), nullable=False),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("last_login", String(32)),
    *timestamp_columns(),
    *soft_delete_columns(),
)

_ROLE_DESCRIPTIONS = {
    "Admin": "Full access, including user and master data administration",
    "Encoder": "Creates and updates audits and findings",
    "Auditor": "Uploads evidence and attachments",
    "Viewer": "Read-only access",
}


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class UserRepository(Repository):
    table = _users
    model = User
    entity = "User"
    order_by = (_users.c.name,)

    def _select(self):
        return select(_users, _roles.c.name.label("role_name")).select_from(
            _users.outerjoin(_roles, _users.c.role_id == _roles.c.id)
        )


class RoleRepository(Repository):
    table = _roles
    model = Role
    entity = "Role"
    soft_delete = False
    order_by = (_roles.c.name,)


class PageRepository(Repository):
    table = _pages
    model = Page
    entity = "Page"
    soft_delete = False
    order_by = (_pages.c.display_order, _pages.c.name)


class PermissionRepository(Repository):
    table = _permissions
    model = Permission
    entity = "Permission"
    soft_delete = False
    order_by = (_permissions.c.name,)


def normalize_email(email: str) -> str:
    """Emails are stored and matched trimmed and lowercased."""
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Facade
# ---------------------------------------------------------------------------


class UserStore:
    """Repository facade for users, roles, pages, permissions and grants.

    Usage:
        store = UserStore("sqlite:///auditmonitor.db")
        admin_role = store.get_role_by_name("Admin")
        store.create_user(name="Admin", email="admin@example.com", password="secret123", role_id=admin_role.id)
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        self.engine: Engine = make_engine(db_url or get_settings().database_url)
        _metadata.create_all(self.engine)
        self.users = UserRepository(self.engine)
        self.roles = RoleRepository(self.engine)
        self.pages = PageRepository(self.engine)
        self.permissions = PermissionRepository(self.engine)
        self._seed_roles()

    def _seed_roles(self) -> None:
        """Insert any built-in role that does not exist yet."""
        with self.engine.connect() as conn:
            existing = set(conn.execute(select(_roles.c.name)).scalars())
            now = now_iso()
            for name in ROLES:
                if name in existing:
                    continue
                conn.execute(
                    _roles.insert().values(
                        name=name,
                        description=_ROLE_DESCRIPTIONS[name],
                        is_active=True,
                        created_at=now,
                        updated_at=now,
                    )
                )
                logger.info("Seeded role %s", name)
            conn.commit()

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def has_users(self) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return (result or 0) > 0

    def get_by_email(self, email: str) -> User | None:
        """Look up a live user by email. Returns None if not found or soft-deleted."""
        found = self.users.list(email=normalize_email(email))
        return found[0] if found else None

    def get_user(self, user_id: int, include_deleted: bool = False) -> User:
        return self.users.get(user_id, include_deleted=include_deleted)

    def list_users(self, include_deleted: bool = False) -> list[User]:
        return self.users.list(include_deleted=include_deleted)

    def create_user(self, name: str, email: str, password: str, role_id: int, is_active: bool = True) -> User:
        """Create a user with a bcrypt-hashed password.

        Raises UnknownReference if role_id does not exist, Conflict if the
        email is already taken (including by a soft-deleted user).
        """
        if not self.roles.exists(role_id):
            raise UnknownReference("Role does not exist.")
        return self.users.create(
            name=name,
            email=normalize_email(email),
            password_hash=hash_password(password),
            role_id=role_id,
            is_active=is_active,
        )

    def update_user(self, user_id: int, **fields) -> User:
        """Partial update. A plaintext `password` field is hashed before storage."""
        if "role_id" in fields and not self.roles.exists(fields["role_id"]):
            raise UnknownReference("Role does not exist.")
        if fields.get("email"):
            fields["email"] = normalize_email(fields["email"])
        password = fields.pop("password", None)
        if password:
            fields["password_hash"] = hash_password(password)
        return self.users.update(user_id, **fields)

    def delete_user(self, user_id: int, deleted_by: int) -> None:
        if user_id == deleted_by:
            raise InvalidState("You cannot delete your own account.")
        self.users.delete(user_id, deleted_by=deleted_by)

    def restore_user(self, user_id: int) -> User:
        return self.users.restore(user_id)

    def change_password(self, user_id: int, current_password: str, new_password: str) -> None:
        user = self.users.get(user_id)
        if not verify_password(current_password, user.password_hash or ""):
            raise ValidationError("Current password is incorrect.")
        self.users.update(user_id, password_hash=hash_password(new_password))

    def update_last_login(self, user_id: int) -> None:
        with self.engine.connect() as conn:
            conn.execute(_users.update().where(_users.c.id == user_id).values(last_login=now_iso()))
            conn.commit()

    # ------------------------------------------------------------------
    # Roles and grants
    # ------------------------------------------------------------------

    def list_active_roles(self) -> list[Role]:
        return self.roles.list(active_only=True)

    def get_role_by_name(self, name: str) -> Role | None:
        found = self.roles.list(name=name)
        return found[0] if found else None

    def get_role(self, role_id: int) -> Role:
        """Return the role with its permission grants attached."""
        role = self.roles.get(role_id)
        role.permissions = self.list_role_permissions(role_id)
        return role

    def delete_role(self, role_id: int) -> None:
        """Hard-delete a role. Refused while any user row references it."""
        with self.engine.connect() as conn:
            in_use = conn.execute(
                select(func.count()).select_from(_users).where(_users.c.role_id == role_id)
            ).scalar()
        if in_use:
            raise Conflict("Role is assigned to one or more users.")
        self.roles.delete(role_id)

    def list_role_permissions(self, role_id: int | None = None) -> list[RolePermission]:
        """Return grants with role, page and permission names joined in."""
        stmt = (
            select(
                _role_permissions,
                _roles.c.name.label("role_name"),
                _pages.c.name.label("page_name"),
                _pages.c.path.label("page_path"),
                _permissions.c.name.label("permission_name"),
            )
            .select_from(
                _role_permissions.join(_roles, _role_permissions.c.role_id == _roles.c.id)
                .join(_pages, _role_permissions.c.page_id == _pages.c.id)
                .join(_permissions, _role_permissions.c.permission_id == _permissions.c.id)
            )
            .order_by(_roles.c.name, _pages.c.display_order, _pages.c.name, _permissions.c.name)
        )
        if role_id is not None:
            stmt = stmt.where(_role_permissions.c.role_id == role_id)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [row_to_model(RolePermission, r) for r in rows]

    def assign_permissions(self, role_id: int, grants: list[tuple[int, int]]) -> list[RolePermission]:
        """Replace the role's grants with the given (page_id, permission_id) pairs.

        Delete and insert run in one transaction, so a failed insert leaves
        the previous grant set in place. Duplicate pairs are collapsed.
        """
        if not self.roles.exists(role_id):
            raise NotFound("Role not found.")
        pairs = list(dict.fromkeys(grants))
        for page_id, permission_id in pairs:
            if not self.pages.exists(page_id):
                raise UnknownReference(f"Page {page_id} does not exist.")
            if not self.permissions.exists(permission_id):
                raise UnknownReference(f"Permission {permission_id} does not exist.")
        now = now_iso()
        try:
            with self.engine.connect() as conn:
                conn.execute(_role_permissions.delete().where(_role_permissions.c.role_id == role_id))
                if pairs:
                    conn.execute(
                        _role_permissions.insert(),
                        [
                            {
                                "role_id": role_id,
                                "page_id": page_id,
                                "permission_id": permission_id,
                                "created_at": now,
                                "updated_at": now,
                            }
                            for page_id, permission_id in pairs
                        ],
                    )
                conn.commit()
        except IntegrityError as exc:
            raise Conflict("Permission grants conflict with existing records.") from exc
        return self.list_role_permissions(role_id)

    def close(self) -> None:
        self.engine.dispose()
