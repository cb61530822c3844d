"""
api/routes/auth.py -- Login and current-user endpoints.

Routes:
  POST /api/auth/login  -- email/password login; returns {token, user}
  GET  /api/auth/me     -- current user, re-queried from the database

Security:
  POST /login is rate-limited per client IP (LOGIN_RATE_LIMIT, default 10/minute).
  authenticate_user() provides timing equalization -- use it, never inline.
  Cache-Control: no-store on login responses so tokens are never cached.
  Wrong email and wrong password produce the same 401 message.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import Envelope, LoginData, LoginRequest, UserOut, ok
from auth.dependencies import get_current_claims
from auth.models import Claims
from auth.store import UserStore
from auth.tokens import authenticate_user, claims_for, create_access_token
from core.config import get_settings
from core.errors import NotFound, Unauthenticated

# Auth policy:
# - POST /api/auth/login: public -- login endpoint must be unauthenticated
# - GET  /api/auth/me:    requires a valid bearer token (any role)
router = APIRouter()

_settings = get_settings()


@limiter.limit(_settings.login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=Envelope[LoginData])
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password and issue an access token.

    The token carries the full claim set, so subsequent requests need no
    database lookup to authenticate.
    """
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.email, body.password)
    if user is None:
        raise Unauthenticated("Invalid email or password.")

    user_store.update_last_login(user.id)
    user = user_store.get_user(user.id)
    token = create_access_token(claims_for(user))
    payload = Envelope[LoginData](
        data=LoginData(token=token, user=UserOut.model_validate(asdict(user))),
        message="Login successful.",
    )
    resp = JSONResponse(status_code=200, content=payload.model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/auth/me", response_model=Envelope[UserOut])
def me(request: Request, claims: Claims = Depends(get_current_claims)) -> dict:
    """Return the current user as stored now, not as captured in the token.

    A token for a user that has since been deleted or deactivated is
    rejected here with 401.
    """
    user_store: UserStore = request.app.state.user_store
    try:
        user = user_store.get_user(claims.user_id)
    except NotFound as exc:
        raise Unauthenticated("User no longer exists.") from exc
    if not user.is_active:
        raise Unauthenticated("User account is inactive.")
    return ok(user)
