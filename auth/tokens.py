"""
auth/tokens.py -- Session token codec, password hashing, and cookie helper.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry the
       full Claims snapshot (see auth.models.Claims.to_payload) plus expiry.
       Decoding returns None on any failure -- the route layer treats that as
       "no session", never as an error.

  Passwords: bcrypt directly. The hash-compare primitive is a black box to the
       credential verifier: verify_password(plain, hashed) -> bool, which
       never raises. verify_password_or_dummy() runs one compare even when
       the account or its hash is missing, so response time does not reveal
       whether an identifier exists.

  SECRET_KEY: sourced from core.config.get_settings(), which refuses to start
       in production without a key of at least 32 characters.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from auth.models import Claims
from core.config import get_settings

logger = logging.getLogger("grihome.auth.tokens")

_ALGORITHM = "HS256"
AUTH_COOKIE = "session_token"

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    Malformed hashes (legacy rows, truncated imports) count as a mismatch.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("grihome_timing_dummy")


def verify_password_or_dummy(
    plain: str,
    hashed: str | None,
    check: Callable[[str, str], bool] = verify_password,
) -> bool:
    """Run exactly one hash compare and return whether it matched.

    When hashed is None (unknown account, or one without a password) the
    compare runs against _DUMMY_HASH and the result is always False.
    """
    if not hashed:
        check(plain, _DUMMY_HASH)
        return False
    return check(plain, hashed)


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def encode_claims(claims: Claims, expire_seconds: int = 0) -> str:
    """Sign a Claims snapshot into a compact JWT.

    Args:
        claims:         The claim set to embed.
        expire_seconds: Token lifetime. If 0 (default), uses
                        Settings.token_expire_seconds.
    """
    settings = get_settings()
    duration = expire_seconds if expire_seconds > 0 else settings.token_expire_seconds
    now = datetime.now(timezone.utc)
    payload = claims.to_payload()
    payload["iat"] = now
    payload["exp"] = now + timedelta(seconds=duration)
    return jwt.encode(payload, settings.secret_key, algorithm=_ALGORITHM)


def decode_claims(token: str) -> Claims | None:
    """Verify a JWT and return its Claims, or None on any failure.

    A token without a subject is treated as invalid: every token this module
    issues carries one.
    """
    try:
        payload = jwt.decode(token, get_settings().secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if not payload.get("sub"):
        return None
    return Claims.from_payload(payload)


def token_expiry(token: str) -> str | None:
    """Return the ISO-8601 expiry of a token already known to be valid."""
    try:
        payload = jwt.get_unverified_claims(token)
    except JWTError:
        return None
    exp = payload.get("exp")
    if exp is None:
        return None
    return datetime.fromtimestamp(int(exp), tz=timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Cookie helper
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str, expire_seconds: int = 0) -> None:
    """Write the session token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie.
    samesite="lax": sent on same-site navigations, not on cross-site POST.
    secure: only sent over HTTPS when SECURE_COOKIES=true.
    max_age: matches the JWT expiry so both expire together.
    """
    settings = get_settings()
    duration = expire_seconds if expire_seconds > 0 else settings.token_expire_seconds
    response.set_cookie(
        AUTH_COOKIE,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        max_age=duration,
    )
