"""
auth/verification.py -- Per-channel verification timestamps.

Each account carries two independent timestamps, email_verified_at and
mobile_verified_at. This tracker is the only writer of either. A successful
OTP login stamps exactly the channel the code was delivered to; the other
channel is never read or written by that call.

mark_verified() is synchronous and idempotent: calling it again simply moves
the timestamp to "now". It returns only after the store has committed, so a
caller that reports login success has already persisted the new state.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from auth.identifiers import channel_for, classify
from auth.models import LoginType, VerificationChannel

if TYPE_CHECKING:
    from auth.store import AccountStore

logger = logging.getLogger("grihome.auth.verification")

_STATUS_FIELDS = ("email_verified_at", "mobile_verified_at")


class VerificationTracker:
    def __init__(self, store: AccountStore) -> None:
        self.store = store

    def mark_verified(self, account_id: str, channel: VerificationChannel, now: datetime | None = None) -> None:
        """Stamp `channel` as verified at `now` (default: current UTC time)."""
        channel = VerificationChannel(channel)
        stamp = now or datetime.now(timezone.utc)
        updated = self.store.update_verification(account_id, channel, stamp)
        if not updated:
            # The account was resolved moments ago; a missing row here means it
            # was deleted concurrently. Nothing to stamp.
            logger.warning("Verification stamp skipped: account %s no longer exists", account_id)
            return
        logger.info("Account %s %s verified", account_id, channel.value)

    def status(self, account_id: str) -> dict[str, str | None] | None:
        """Return both raw timestamps for an account, or None if it does not exist."""
        return self.store.find_account_by_id(account_id, _STATUS_FIELDS)

    def has_verified_channel(self, account_id: str) -> bool:
        """True if at least one of the account's channels has been verified."""
        row = self.status(account_id)
        if row is None:
            return False
        return any(row[name] is not None for name in _STATUS_FIELDS)

    def can_send_otp(self, identifier: str) -> bool:
        """True if `identifier` belongs to an account whose matching channel is verified.

        The login form calls this before asking the gateway to send a code, so a
        code is only ever sent to an address or number already proven once.
        """
        if not identifier or not identifier.strip():
            return False
        account = self.store.find_account_by_field(classify(identifier, LoginType.otp), identifier)
        if account is None:
            return False
        if channel_for(identifier) is VerificationChannel.email:
            return account.email_verified_at is not None
        return account.mobile_verified_at is not None
