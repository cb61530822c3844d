"""
api/routes/users.py -- User administration endpoints.

Routes (fixed paths registered before /users/{user_id} so they are not captured):
  GET    /api/users                     -- list users (?includeDeleted=true)
  POST   /api/users                     -- create user
  GET    /api/users/roles               -- active roles for the user form dropdown
  POST   /api/users/change-password     -- change own password (any authenticated user)
  GET    /api/users/{user_id}           -- user detail
  PUT    /api/users/{user_id}           -- partial update (password re-hashed)
  DELETE /api/users/{user_id}           -- soft delete; self-deletion refused
  POST   /api/users/{user_id}/restore   -- undo soft delete

Password hashes never leave the store: UserOut has no password field.
"""

from fastapi import APIRouter, Depends, Query, Request

from api.models import ChangePasswordRequest, Envelope, RoleOut, UserCreate, UserOut, UserUpdate, ok
from auth.dependencies import get_current_claims, require
from auth.models import Claims
from auth.store import UserStore

router = APIRouter()

_manage = require("manage_users")


def _store(request: Request) -> UserStore:
    return request.app.state.user_store


@router.get("/users", response_model=Envelope[list[UserOut]])
def list_users(
    request: Request,
    include_deleted: bool = Query(False, alias="includeDeleted"),
    claims: Claims = Depends(_manage),
) -> dict:
    return ok(_store(request).list_users(include_deleted=include_deleted))


@router.post("/users", response_model=Envelope[UserOut], status_code=201)
def create_user(request: Request, body: UserCreate, claims: Claims = Depends(_manage)) -> dict:
    user = _store(request).create_user(
        name=body.name,
        email=body.email,
        password=body.password,
        role_id=body.role_id,
        is_active=body.is_active,
    )
    return ok(user, message="User created.")


@router.get("/users/roles", response_model=Envelope[list[RoleOut]])
def list_role_options(request: Request, claims: Claims = Depends(_manage)) -> dict:
    return ok(_store(request).list_active_roles())


@router.post("/users/change-password", response_model=Envelope[None])
def change_password(
    request: Request,
    body: ChangePasswordRequest,
    claims: Claims = Depends(get_current_claims),
) -> dict:
    """Change the caller's own password after verifying the current one."""
    _store(request).change_password(claims.user_id, body.current_password, body.new_password)
    return ok(message="Password changed.")


@router.get("/users/{user_id}", response_model=Envelope[UserOut])
def get_user(
    request: Request,
    user_id: int,
    include_deleted: bool = Query(False, alias="includeDeleted"),
    claims: Claims = Depends(_manage),
) -> dict:
    return ok(_store(request).get_user(user_id, include_deleted=include_deleted))


@router.put("/users/{user_id}", response_model=Envelope[UserOut])
def update_user(request: Request, user_id: int, body: UserUpdate, claims: Claims = Depends(_manage)) -> dict:
    user = _store(request).update_user(user_id, **body.model_dump(exclude_unset=True))
    return ok(user, message="User updated.")


@router.delete("/users/{user_id}", response_model=Envelope[None])
def delete_user(request: Request, user_id: int, claims: Claims = Depends(_manage)) -> dict:
    _store(request).delete_user(user_id, deleted_by=claims.user_id)
    return ok(message="User deleted.")


@router.post("/users/{user_id}/restore", response_model=Envelope[UserOut])
def restore_user(request: Request, user_id: int, claims: Claims = Depends(_manage)) -> dict:
    return ok(_store(request).restore_user(user_id), message="User restored.")
