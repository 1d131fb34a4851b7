"""
auth/credentials.py -- Password and one-time-code credential verification.

Raw login input is first validated into exactly one Credential variant
(PasswordCredential or OtpCredential) by parse_credential(). verify() then
dispatches on the variant's LoginType to one strategy per mode.

Contract:
  verify(credential) -> Account | None

  None means "rejected", whatever the reason: unknown identifier, missing
  password hash, wrong password, wrong code, gateway said no. Callers cannot
  tell these apart, which is what stops identifier enumeration through the
  login form.

  Exceptions are reserved for transport failures: GatewayError when the OTP
  gateway cannot be reached, SQLAlchemy errors when the store cannot. They
  propagate unchanged.

OTP acceptance:
  (a) the configured fallback code, in any environment except production;
  (b) a gateway access token whose confirmed identifier is the submitted one.
      With no gateway configured, (b) is a plain rejection.
  The account must already exist. On success the channel implied by the
  identifier is stamped verified before verify() returns.

Timing:
  Password mode always runs exactly one bcrypt compare once an identifier is
  present, using a dummy hash when the account or its hash is missing.
"""

from __future__ import annotations

import hmac
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from auth import identifiers
from auth.models import Account, Credential, LoginType, OtpCredential, PasswordCredential
from auth.tokens import verify_password, verify_password_or_dummy
from auth.verification import VerificationTracker
from core.config import Settings, get_settings

if TYPE_CHECKING:
    from auth.gateway import OtpGateway
    from auth.store import AccountStore

logger = logging.getLogger("grihome.auth.credentials")

PasswordCheck = Callable[[str, str], bool]


# ---------------------------------------------------------------------------
# Input validation -> tagged union
# ---------------------------------------------------------------------------


def is_well_formed_code(code: str | None, length: int) -> bool:
    return code is not None and len(code) == length and code.isascii() and code.isdigit()


def parse_credential(
    identifier: str | None,
    *,
    login_type: LoginType | str | None = None,
    password: str | None = None,
    otp: str | None = None,
    access_token: str | None = None,
    otp_length: int = 6,
) -> Credential | None:
    """Validate raw login fields into a Credential, or None if they cannot form one.

    login_type defaults to password. An unknown login_type is rejected the
    same way as a missing secret: None, without touching the store.
    """
    if not identifier or not identifier.strip():
        return None
    identifier = identifier.strip()

    try:
        mode = LoginType(login_type or LoginType.password)
    except ValueError:
        return None

    if mode is LoginType.password:
        if not password:
            return None
        return PasswordCredential(identifier=identifier, secret=password)

    code = otp.strip() if otp else None
    if not is_well_formed_code(code, otp_length):
        code = None
    if code is None and not access_token:
        return None
    return OtpCredential(identifier=identifier, code=code, access_token=access_token or None)


# ---------------------------------------------------------------------------
# Verifier
# ---------------------------------------------------------------------------


class CredentialVerifier:
    """Checks a Credential against the store, the hash primitive and the OTP gateway."""

    def __init__(
        self,
        store: AccountStore,
        tracker: VerificationTracker,
        gateway: OtpGateway | None = None,
        settings: Settings | None = None,
        password_check: PasswordCheck = verify_password,
    ) -> None:
        self.store = store
        self.tracker = tracker
        self.gateway = gateway
        self.settings = settings or get_settings()
        self.password_check = password_check
        self._strategies: dict[LoginType, Callable[[Credential], Account | None]] = {
            LoginType.password: self._verify_password,
            LoginType.otp: self._verify_otp,
        }

    def verify(self, credential: Credential | None) -> Account | None:
        """Return the authenticated Account, or None for any rejected credential."""
        if credential is None:
            return None
        account = self._strategies[credential.login_type](credential)
        logger.info(
            "%s login for %s: %s",
            credential.login_type.value,
            identifiers.mask_identifier(credential.identifier),
            "accepted" if account is not None else "rejected",
        )
        return account

    # ------------------------------------------------------------------
    # Password strategy
    # ------------------------------------------------------------------

    def _verify_password(self, credential: PasswordCredential) -> Account | None:
        if not credential.secret:
            return None
        account = identifiers.resolve(self.store, credential.identifier, LoginType.password)
        hashed = account.hashed_password if account is not None else None
        if not verify_password_or_dummy(credential.secret, hashed, self.password_check):
            return None
        return account

    # ------------------------------------------------------------------
    # OTP strategy
    # ------------------------------------------------------------------

    def _verify_otp(self, credential: OtpCredential) -> Account | None:
        if not self._otp_accepted(credential):
            return None
        account = identifiers.resolve(self.store, credential.identifier, LoginType.otp)
        if account is None:
            return None
        self.tracker.mark_verified(account.id, identifiers.channel_for(credential.identifier))
        # Return the post-stamp row so the caller mints claims that already
        # reflect the verification.
        return self.store.get_account(account.id) or account

    def _otp_accepted(self, credential: OtpCredential) -> bool:
        if credential.code is not None and self._is_fallback_code(credential.code):
            return True
        if not credential.access_token:
            return False
        if self.gateway is None or not self.gateway.configured:
            logger.warning("OTP access token submitted but the gateway is not configured")
            return False
        result = self.gateway.verify_token(credential.access_token)
        if not result.success:
            return False
        confirmed = result.identifier or credential.identifier
        if not identifiers.same_identifier(credential.identifier, confirmed):
            logger.warning(
                "Gateway confirmed %s but login was for %s",
                identifiers.mask_identifier(confirmed),
                identifiers.mask_identifier(credential.identifier),
            )
            return False
        return True

    def _is_fallback_code(self, code: str) -> bool:
        if not self.settings.otp_fallback_enabled:
            return False
        return hmac.compare_digest(code.encode(), self.settings.otp_fallback_code.encode())
