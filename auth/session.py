"""
auth/session.py -- Project token claims plus a live store read into a SessionView.

Claims can be stale; the store is current but may be missing fields the token
still carries (or the row may be gone). Each public field is resolved by an
explicit rule over named fields rather than a dict merge, because the two
sources disagree on names (mobile_number vs phone) and on representation
(derived booleans vs raw timestamps):

  public field        claims source          store fallback
  -----------------   --------------------   ----------------------------
  role                role                   role
  username            username               username
  mobileNumber        mobile_number          phone
  companyName         company_name           company_name
  image, imageLink    avatar_url             avatar_url (then shell.image)
  isEmailVerified     is_email_verified      email_verified_at is not None
  isMobileVerified    is_mobile_verified     mobile_verified_at is not None
  isAgent             -- derived from whichever role won --

A claims value wins when it is present: not None, not "", and for booleans
True. Timestamps are only ever used to derive booleans; they never leave
this module.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar

from auth.models import AGENT_ROLE, Claims, SessionShell, SessionView

if TYPE_CHECKING:
    from auth.store import AccountStore

logger = logging.getLogger("grihome.auth.session")

T = TypeVar("T")

PROJECTION_FIELDS = (
    "avatar_url",
    "email_verified_at",
    "mobile_verified_at",
    "company_name",
    "role",
    "username",
    "phone",
)


def _present(value: Any) -> bool:
    return value is not None and value != "" and value is not False


def coalesce(preferred: T | None, fallback: T | None) -> T | None:
    """Return `preferred` if present, else `fallback`."""
    return preferred if _present(preferred) else fallback


class SessionProjector:
    def __init__(self, store: AccountStore) -> None:
        self.store = store

    def project(self, claims: Claims | None, shell: SessionShell) -> SessionView | SessionShell:
        """Build the public session for `claims`.

        Returns `shell` itself (same object) when there is no subject to
        project, so callers can detect "nothing happened" with `is`.
        """
        if claims is None or not claims.sub:
            return shell

        row: dict[str, Any] = self.store.find_account_by_id(claims.sub, PROJECTION_FIELDS) or {}
        if not row:
            logger.info("Projecting session for %s without a store row", claims.sub)

        role = coalesce(claims.role, row.get("role"))
        avatar = coalesce(coalesce(claims.avatar_url, row.get("avatar_url")), shell.image)
        return SessionView(
            id=claims.sub,
            email=coalesce(shell.email, claims.email),
            name=coalesce(shell.name, claims.name),
            role=role,
            image=avatar,
            username=coalesce(claims.username, row.get("username")),
            mobile_number=coalesce(claims.mobile_number, row.get("phone")),
            is_email_verified=claims.is_email_verified or row.get("email_verified_at") is not None,
            is_mobile_verified=claims.is_mobile_verified or row.get("mobile_verified_at") is not None,
            is_agent=role == AGENT_ROLE,
            company_name=coalesce(claims.company_name, row.get("company_name")),
            image_link=avatar,
            expires=shell.expires,
        )
