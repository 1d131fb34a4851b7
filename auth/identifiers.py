"""
auth/identifiers.py -- Classify a raw login identifier and find its account.

Classification is asymmetric by credential mode:

  identifier        password mode    otp mode
  ---------------   -------------    --------
  contains "@"      email            email
  anything else     username         phone

Phone is never a password-mode key and username is never an OTP-mode key.
A code is delivered to an address or a number, never to a username, and the
password form has always accepted "email or username".

Lookups return the first matching account or None. Absence is not an error.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING

from auth.models import Account, LoginType, LookupField, VerificationChannel

if TYPE_CHECKING:
    from auth.store import AccountStore

logger = logging.getLogger("grihome.auth.identifiers")


def is_email(identifier: str) -> bool:
    return "@" in identifier


def classify(identifier: str, mode: LoginType) -> LookupField:
    """Return the account column `identifier` is matched against in `mode`."""
    if is_email(identifier):
        return LookupField.email
    if LoginType(mode) is LoginType.otp:
        return LookupField.phone
    return LookupField.username


def channel_for(identifier: str) -> VerificationChannel:
    """Return the verification channel an OTP sent to `identifier` proves."""
    return VerificationChannel.email if is_email(identifier) else VerificationChannel.mobile


def resolve(store: AccountStore, identifier: str | None, mode: LoginType) -> Account | None:
    """Look up the account for `identifier` under `mode`'s classification rule.

    Empty or blank identifiers return None without querying the store.
    """
    if not identifier or not identifier.strip():
        return None
    lookup = classify(identifier, mode)
    account = store.find_account_by_field(lookup, identifier)
    logger.debug("Resolved %s by %s: %s", mask_identifier(identifier), lookup.value, account is not None)
    return account


def phone_candidates(number: str) -> Iterator[str]:
    """Yield the stored forms a phone number may take.

    The OTP gateway reports numbers as bare digits with country code
    ("911234567890"); accounts store them E.164-style ("+911234567890").
    The exact value is tried first, then the "+"-prefixed form.
    """
    number = number.strip()
    yield number
    if not number.startswith("+"):
        yield f"+{number}"


def same_identifier(submitted: str, confirmed: str) -> bool:
    """True if a gateway-confirmed identifier names the same address as `submitted`.

    Phone numbers match when any stored form of one equals any stored form of
    the other, so a leading "+" on either side does not matter.
    """
    if is_email(submitted) or is_email(confirmed):
        return submitted.strip().lower() == confirmed.strip().lower()
    return not set(phone_candidates(submitted)).isdisjoint(phone_candidates(confirmed))


def mask_identifier(identifier: str) -> str:
    """Return a log-safe form of an identifier: first two characters, rest starred.

    For e-mail addresses the domain is kept so operators can spot provider-wide
    problems without the log holding a usable address.
    """
    if is_email(identifier):
        local, _, domain = identifier.partition("@")
        return f"{local[:2]}***@{domain}"
    return f"{identifier[:2]}***" if len(identifier) > 2 else "***"
