"""
api/routes/access.py -- Roles, pages, permissions and role grants (Admin only).

Routes:
  GET/POST          /api/roles
  GET               /api/roles/permissions             -- every grant, all roles
  GET/PUT/DELETE    /api/roles/{role_id}               -- GET includes the role's grants
  GET/POST          /api/roles/{role_id}/permissions   -- POST replaces the grant set
  GET/POST          /api/pages
  GET/PUT/DELETE    /api/pages/{page_id}
  GET/POST          /api/permissions
  GET/PUT/DELETE    /api/permissions/{permission_id}

Roles, pages and permissions are hard-deleted. Deleting a page or permission
removes its grants; deleting a role that users still reference is refused
with 409.

These tables describe screens and verbs for the client's navigation. The
server-side authorization decision always comes from auth/policy.py.
"""

from fastapi import APIRouter, Depends, Query, Request

from api.models import (
    AssignPermissionsRequest,
    Envelope,
    PageCreate,
    PageOut,
    PageUpdate,
    PermissionCreate,
    PermissionOut,
    PermissionUpdate,
    RoleCreate,
    RoleOut,
    RolePermissionOut,
    RoleUpdate,
    ok,
)
from auth.dependencies import require
from auth.models import Claims
from auth.store import UserStore

router = APIRouter()

_roles = require("manage_roles")
_pages = require("manage_pages")
_permissions = require("manage_permissions")


def _store(request: Request) -> UserStore:
    return request.app.state.user_store


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------


@router.get("/roles", response_model=Envelope[list[RoleOut]])
def list_roles(
    request: Request,
    active_only: bool = Query(False),
    claims: Claims = Depends(_roles),
) -> dict:
    return ok(_store(request).roles.list(active_only=active_only))


@router.post("/roles", response_model=Envelope[RoleOut], status_code=201)
def create_role(request: Request, body: RoleCreate, claims: Claims = Depends(_roles)) -> dict:
    return ok(_store(request).roles.create(**body.model_dump()), message="Role created.")


@router.get("/roles/permissions", response_model=Envelope[list[RolePermissionOut]])
def list_all_grants(request: Request, claims: Claims = Depends(_roles)) -> dict:
    return ok(_store(request).list_role_permissions())


@router.get("/roles/{role_id}", response_model=Envelope[RoleOut])
def get_role(request: Request, role_id: int, claims: Claims = Depends(_roles)) -> dict:
    return ok(_store(request).get_role(role_id))


@router.put("/roles/{role_id}", response_model=Envelope[RoleOut])
def update_role(request: Request, role_id: int, body: RoleUpdate, claims: Claims = Depends(_roles)) -> dict:
    store = _store(request)
    store.roles.update(role_id, **body.model_dump(exclude_unset=True))
    return ok(store.get_role(role_id), message="Role updated.")


@router.delete("/roles/{role_id}", response_model=Envelope[None])
def delete_role(request: Request, role_id: int, claims: Claims = Depends(_roles)) -> dict:
    _store(request).delete_role(role_id)
    return ok(message="Role deleted.")


@router.get("/roles/{role_id}/permissions", response_model=Envelope[list[RolePermissionOut]])
def list_role_grants(request: Request, role_id: int, claims: Claims = Depends(_roles)) -> dict:
    store = _store(request)
    store.roles.get(role_id)
    return ok(store.list_role_permissions(role_id))


@router.post("/roles/{role_id}/permissions", response_model=Envelope[list[RolePermissionOut]])
def assign_role_grants(
    request: Request,
    role_id: int,
    body: AssignPermissionsRequest,
    claims: Claims = Depends(_roles),
) -> dict:
    grants = [(g.page_id, g.permission_id) for g in body.permissions]
    return ok(_store(request).assign_permissions(role_id, grants), message="Permissions assigned.")


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------


@router.get("/pages", response_model=Envelope[list[PageOut]])
def list_pages(
    request: Request,
    active_only: bool = Query(False),
    claims: Claims = Depends(_pages),
) -> dict:
    return ok(_store(request).pages.list(active_only=active_only))


@router.post("/pages", response_model=Envelope[PageOut], status_code=201)
def create_page(request: Request, body: PageCreate, claims: Claims = Depends(_pages)) -> dict:
    return ok(_store(request).pages.create(**body.model_dump()), message="Page created.")


@router.get("/pages/{page_id}", response_model=Envelope[PageOut])
def get_page(request: Request, page_id: int, claims: Claims = Depends(_pages)) -> dict:
    return ok(_store(request).pages.get(page_id))


@router.put("/pages/{page_id}", response_model=Envelope[PageOut])
def update_page(request: Request, page_id: int, body: PageUpdate, claims: Claims = Depends(_pages)) -> dict:
    page = _store(request).pages.update(page_id, **body.model_dump(exclude_unset=True))
    return ok(page, message="Page updated.")


@router.delete("/pages/{page_id}", response_model=Envelope[None])
def delete_page(request: Request, page_id: int, claims: Claims = Depends(_pages)) -> dict:
    _store(request).pages.delete(page_id)
    return ok(message="Page deleted.")


# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------


@router.get("/permissions", response_model=Envelope[list[PermissionOut]])
def list_permissions(request: Request, claims: Claims = Depends(_permissions)) -> dict:
    return ok(_store(request).permissions.list())


@router.post("/permissions", response_model=Envelope[PermissionOut], status_code=201)
def create_permission(request: Request, body: PermissionCreate, claims: Claims = Depends(_permissions)) -> dict:
    return ok(_store(request).permissions.create(**body.model_dump()), message="Permission created.")


@router.get("/permissions/{permission_id}", response_model=Envelope[PermissionOut])
def get_permission(request: Request, permission_id: int, claims: Claims = Depends(_permissions)) -> dict:
    return ok(_store(request).permissions.get(permission_id))


@router.put("/permissions/{permission_id}", response_model=Envelope[PermissionOut])
def update_permission(
    request: Request,
    permission_id: int,
    body: PermissionUpdate,
    claims: Claims = Depends(_permissions),
) -> dict:
    permission = _store(request).permissions.update(permission_id, **body.model_dump(exclude_unset=True))
    return ok(permission, message="Permission updated.")


@router.delete("/permissions/{permission_id}", response_model=Envelope[None])
def delete_permission(request: Request, permission_id: int, claims: Claims = Depends(_permissions)) -> dict:
    _store(request).permissions.delete(permission_id)
    return ok(message="Permission deleted.")
