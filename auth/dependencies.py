"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication and authorization.

Authentication gate:
  get_current_claims() reads "Authorization: Bearer <token>", verifies it and
  returns the Claims embedded in the token. No database lookup -- callers
  that need fresh role or active-status data must re-query (GET /auth/me does).

Authorization guard:
  require(action) is the single composable guard every protected route uses.
  It runs the authentication gate, then checks the caller's role_name against
  the policy table stored on app.state.policy:

      @router.delete("/audits/{audit_id}")
      def delete_audit(audit_id: int, claims: Claims = Depends(require("delete_audit"))): ...

Failures raise core.errors.Unauthenticated (401) and Forbidden (403); the
exception handler in api/main.py renders the error envelope.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Request

from auth.models import Claims
from auth.policy import is_allowed
from auth.tokens import decode_access_token
from core.errors import Forbidden, Unauthenticated


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_current_claims(request: Request) -> Claims:
    """Require a valid bearer token. Raises Unauthenticated otherwise."""
    token = _bearer_token(request)
    if token is None:
        raise Unauthenticated("Authentication required.")
    claims = decode_access_token(token)
    if claims is None:
        raise Unauthenticated("Invalid or expired token.")
    return claims


def require(action: str) -> Callable[[Request], Claims]:
    """Build a dependency that authenticates the caller and checks `action`."""

    def guard(request: Request) -> Claims:
        claims = get_current_claims(request)
        if not is_allowed(request.app.state.policy, claims.role_name, action):
            raise Forbidden("You do not have permission to perform this action.")
        return claims

    return guard
