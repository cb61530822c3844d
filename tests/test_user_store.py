"""Unit tests for auth/store.py -- users, roles and permission grants.

Covers:
- Built-in roles are seeded once, idempotently
- Email uniqueness holds against soft-deleted users too
- Self-deletion is refused; delete/restore pre-state checks
- Password change verifies the current password
- Role deletion is refused while users reference the role
- assign_permissions() replaces the grant set atomically
"""

import pytest

from auth.policy import ROLES
from auth.store import UserStore
from auth.tokens import verify_password
from core.errors import Conflict, InvalidState, NotFound, UnknownReference, ValidationError


@pytest.fixture
def store():
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


def _user(store: UserStore, email: str, role: str = "Viewer"):
    role_id = store.get_role_by_name(role).id
    return store.create_user(name="Test User", email=email, password="goodpass1", role_id=role_id)


class TestRoles:
    def test_builtin_roles_seeded(self, store) -> None:
        names = {r.name for r in store.list_active_roles()}
        assert names == set(ROLES)

    def test_seeding_is_idempotent(self, store) -> None:
        store._seed_roles()
        assert len(store.roles.list()) == len(ROLES)

    def test_delete_role_in_use_conflicts(self, store) -> None:
        _user(store, "a@example.com", role="Auditor")
        with pytest.raises(Conflict):
            store.delete_role(store.get_role_by_name("Auditor").id)

    def test_delete_unused_role(self, store) -> None:
        role = store.roles.create(name="Guest", description="Temporary")
        store.delete_role(role.id)
        with pytest.raises(NotFound):
            store.get_role(role.id)


class TestUsers:
    def test_create_user_hashes_password(self, store) -> None:
        user = _user(store, "hash@example.com")
        assert user.password_hash != "goodpass1"
        assert verify_password("goodpass1", user.password_hash)
        assert user.role_name == "Viewer"

    def test_email_stored_lowercase(self, store) -> None:
        user = _user(store, "  Ops.Admin@Example.COM ")
        assert user.email == "ops.admin@example.com"
        assert store.get_by_email("OPS.ADMIN@example.com").id == user.id

    def test_email_case_variants_conflict(self, store) -> None:
        _user(store, "crew@example.com")
        with pytest.raises(Conflict):
            _user(store, "Crew@Example.com")

    def test_update_email_is_normalized(self, store) -> None:
        user = _user(store, "before@example.com")
        assert store.update_user(user.id, email="After@Example.com").email == "after@example.com"

    def test_unknown_role_is_rejected(self, store) -> None:
        with pytest.raises(UnknownReference):
            store.create_user(name="X Y", email="x@example.com", password="goodpass1", role_id=999)

    def test_duplicate_email_conflicts_even_when_deleted(self, store) -> None:
        admin = _user(store, "admin@example.com", role="Admin")
        victim = _user(store, "dup@example.com")
        store.delete_user(victim.id, deleted_by=admin.id)
        with pytest.raises(Conflict):
            _user(store, "dup@example.com")

    def test_self_delete_refused(self, store) -> None:
        admin = _user(store, "admin@example.com", role="Admin")
        with pytest.raises(InvalidState):
            store.delete_user(admin.id, deleted_by=admin.id)

    def test_delete_and_restore_lifecycle(self, store) -> None:
        admin = _user(store, "admin@example.com", role="Admin")
        user = _user(store, "life@example.com")

        store.delete_user(user.id, deleted_by=admin.id)
        assert user.id not in {u.id for u in store.list_users()}
        deleted = store.get_user(user.id, include_deleted=True)
        assert deleted.deleted_at is not None
        assert deleted.deleted_by == admin.id

        with pytest.raises(InvalidState):
            store.delete_user(user.id, deleted_by=admin.id)

        restored = store.restore_user(user.id)
        assert restored.deleted_at is None and restored.deleted_by is None

        with pytest.raises(InvalidState):
            store.restore_user(user.id)

    def test_delete_missing_user(self, store) -> None:
        admin = _user(store, "admin@example.com", role="Admin")
        with pytest.raises(NotFound):
            store.delete_user(4242, deleted_by=admin.id)

    def test_update_user_rehashes_password(self, store) -> None:
        user = _user(store, "pw@example.com")
        updated = store.update_user(user.id, password="newpass99")
        assert verify_password("newpass99", updated.password_hash)

    def test_change_password_requires_current(self, store) -> None:
        user = _user(store, "change@example.com")
        with pytest.raises(ValidationError):
            store.change_password(user.id, "wrongpass", "newpass99")
        store.change_password(user.id, "goodpass1", "newpass99")
        assert verify_password("newpass99", store.get_user(user.id).password_hash)

    def test_update_last_login(self, store) -> None:
        user = _user(store, "login@example.com")
        assert user.last_login is None
        store.update_last_login(user.id)
        assert store.get_user(user.id).last_login is not None


class TestPermissionGrants:
    @pytest.fixture
    def catalog(self, store):
        pages = [
            store.pages.create(name="Audits", path="/audits"),
            store.pages.create(name="Findings", path="/findings"),
        ]
        perms = [store.permissions.create(name="view"), store.permissions.create(name="edit")]
        return pages, perms

    def test_assign_replaces_previous_set(self, store, catalog) -> None:
        pages, perms = catalog
        role_id = store.get_role_by_name("Encoder").id
        store.assign_permissions(role_id, [(pages[0].id, perms[0].id), (pages[0].id, perms[1].id)])
        grants = store.assign_permissions(role_id, [(pages[1].id, perms[0].id)])
        assert [(g.page_name, g.permission_name) for g in grants] == [("Findings", "view")]

    def test_duplicate_pairs_collapse(self, store, catalog) -> None:
        pages, perms = catalog
        role_id = store.get_role_by_name("Viewer").id
        grants = store.assign_permissions(role_id, [(pages[0].id, perms[0].id), (pages[0].id, perms[0].id)])
        assert len(grants) == 1

    def test_unknown_page_keeps_previous_grants(self, store, catalog) -> None:
        pages, perms = catalog
        role_id = store.get_role_by_name("Auditor").id
        store.assign_permissions(role_id, [(pages[0].id, perms[0].id)])
        with pytest.raises(UnknownReference):
            store.assign_permissions(role_id, [(999, perms[0].id)])
        assert len(store.list_role_permissions(role_id)) == 1

    def test_empty_set_clears_grants(self, store, catalog) -> None:
        pages, perms = catalog
        role_id = store.get_role_by_name("Auditor").id
        store.assign_permissions(role_id, [(pages[0].id, perms[0].id)])
        assert store.assign_permissions(role_id, []) == []

    def test_get_role_includes_permissions(self, store, catalog) -> None:
        pages, perms = catalog
        role_id = store.get_role_by_name("Admin").id
        store.assign_permissions(role_id, [(pages[0].id, perms[1].id)])
        role = store.get_role(role_id)
        assert role.permissions[0].page_path == "/audits"

    def test_deleting_page_cascades_to_grants(self, store, catalog) -> None:
        pages, perms = catalog
        role_id = store.get_role_by_name("Admin").id
        store.assign_permissions(role_id, [(pages[0].id, perms[0].id)])
        store.pages.delete(pages[0].id)
        assert store.list_role_permissions(role_id) == []
