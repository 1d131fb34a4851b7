"""
auth/claims.py -- Mint session claims at login and refresh them on demand.

mint() copies a fixed set of account attributes into an immutable Claims
snapshot. After that the snapshot is stable across requests: the same token
yields byte-for-byte the same claims until a refresh fires.

A refresh fires when either
  - the caller passes REFRESH_TRIGGER (the client asked for fresh data), or
  - the held claims have no username (a token minted before the profile was
    completed).
It re-reads the watched fields from the store and returns a NEW Claims object
with all of them replaced at once. Two concurrent refreshes each return a
complete claim set; neither can observe a mix of old and new fields.

If the account row is gone, the held claims are returned untouched. That keeps
an in-flight session readable while the account is being deleted; the next
login will fail as usual.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from auth.models import AGENT_ROLE, Account, Claims

if TYPE_CHECKING:
    from auth.store import AccountStore

logger = logging.getLogger("grihome.auth.claims")

REFRESH_TRIGGER = "update"

# Store columns re-read on refresh.
WATCHED_FIELDS = (
    "role",
    "avatar_url",
    "username",
    "phone",
    "email_verified_at",
    "mobile_verified_at",
    "company_name",
)


def mint(account: Account) -> Claims:
    """Build the initial claim set for a freshly authenticated account."""
    return Claims(
        sub=account.id,
        email=account.email,
        name=account.name,
        role=account.role,
        username=account.username,
        mobile_number=account.phone,
        is_email_verified=account.email_verified_at is not None,
        is_mobile_verified=account.mobile_verified_at is not None,
        is_agent=account.role == AGENT_ROLE,
        company_name=account.company_name,
        avatar_url=account.avatar_url,
    )


def should_refresh(claims: Claims, trigger: str | None) -> bool:
    # TODO: confirm with product whether the missing-username path is meant for
    # legacy tokens only; it also fires for every account without a username.
    return trigger == REFRESH_TRIGGER or not claims.username


class TokenRefresher:
    def __init__(self, store: AccountStore) -> None:
        self.store = store

    def refresh(self, claims: Claims, trigger: str | None = None) -> Claims:
        """Return refreshed claims, or `claims` itself when no refresh applies."""
        if not claims.sub or not should_refresh(claims, trigger):
            return claims
        row = self.store.find_account_by_id(claims.sub, WATCHED_FIELDS)
        if row is None:
            logger.warning("Refresh for %s found no account; keeping held claims", claims.sub)
            return claims
        refreshed = replace(
            claims,
            role=row["role"],
            avatar_url=row["avatar_url"],
            username=row["username"],
            mobile_number=row["phone"],
            is_email_verified=row["email_verified_at"] is not None,
            is_mobile_verified=row["mobile_verified_at"] is not None,
            is_agent=row["role"] == AGENT_ROLE,
            company_name=row["company_name"],
        )
        logger.debug("Claims refreshed for %s (trigger=%s)", claims.sub, trigger)
        return refreshed
