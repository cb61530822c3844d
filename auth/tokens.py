"""
auth/tokens.py -- JWT and password hashing utilities.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry the
       full claim set (user_id, email, role_id, role_name, name) plus expiry.
       Verification returns None on any failure -- the authentication gate
       turns that into Unauthenticated.

  Passwords: bcrypt, used directly. The _DUMMY_HASH constant enables timing
       equalization in authenticate_user() so response time does not reveal
       whether an email address exists.

  SECRET_KEY: sourced from core.config.get_settings(). The Settings class
       validates the key at startup.

Layer rule: no imports from api/, tracker/, or storage/. Import from core/
is allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from auth.models import Claims
from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("auditmonitor.auth")

_settings = get_settings()

_ALGORITHM = "HS256"

_CLAIM_KEYS = ("user_id", "email", "role_id", "role_name", "name")

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt only looks at the first 72 bytes; the API layer caps password
    length well below that.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("auditmonitor_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def claims_for(user: User) -> Claims:
    return Claims(
        user_id=user.id,
        email=user.email,
        role_id=user.role_id,
        role_name=user.role_name or "",
        name=user.name,
    )


def create_access_token(claims: Claims, expire_seconds: int = 0) -> str:
    """Encode a signed JWT carrying the claim set.

    Args:
        claims:         Identity to embed. email doubles as the subject.
        expire_seconds: Lifetime in seconds. If 0 (default), uses
                        Settings.token_expire_seconds.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.token_expire_seconds
    expire = datetime.now(timezone.utc) + timedelta(seconds=duration)
    payload = {
        "sub": claims.email,
        "user_id": claims.user_id,
        "email": claims.email,
        "role_id": claims.role_id,
        "role_name": claims.role_name,
        "name": claims.name,
        "exp": expire,
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str) -> Claims | None:
    """Decode and verify a JWT. Returns Claims or None on any failure.

    Bad signature, expiry, and missing claim keys are all treated the same.
    """
    try:
        payload = jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if any(key not in payload for key in _CLAIM_KEYS):
        return None
    return Claims(**{key: payload[key] for key in _CLAIM_KEYS})


# ---------------------------------------------------------------------------
# User authentication (constant-time)
# ---------------------------------------------------------------------------


def authenticate_user(store: UserStore, email: str, password: str) -> User | None:
    """Authenticate an email/password login with timing equalization.

    Always runs bcrypt whether or not the user exists:
    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)

    Soft-deleted users are invisible to get_by_email(), so they fall into the
    unknown-email branch. Inactive users fail after the password check.

    Returns the User on success, None on any failure.
    """
    user = store.get_by_email(email)
    if user is None or not user.password_hash:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.password_hash):
        return None
    if not user.is_active:
        logger.info("Login refused for inactive user id=%s", user.id)
        return None
    return user
