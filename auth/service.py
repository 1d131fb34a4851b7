"""
auth/service.py -- Authentication service: one object wiring every component.

Built once at process start with an injected AccountStore and (optionally) an
OtpGateway, then shared by every request. It holds no per-request state, so
concurrent requests never contend on it.

Login lifecycle:

  Unauthenticated -> CredentialSubmitted -> Rejected          (terminal per attempt)
                                         -> Accepted -> TokenMinted -> SessionActive
  SessionActive -> (refresh trigger) -> TokenRefreshed -> SessionActive

There is no lockout state and no attempt counting.

Partial state: an OTP login stamps the verification timestamp before it
returns the account. If the caller fails after that but before setting the
session cookie, the account stays verified without a session. That is
accepted; the stamp is true either way.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from auth.claims import TokenRefresher, mint
from auth.credentials import CredentialVerifier, parse_credential
from auth.gateway import OtpGateway
from auth.models import Account, Claims, LoginType, SessionShell, SessionView
from auth.session import SessionProjector
from auth.store import AccountStore
from auth.tokens import decode_claims, encode_claims, token_expiry
from auth.verification import VerificationTracker
from core.config import Settings, get_settings

logger = logging.getLogger("grihome.auth")


@dataclass(frozen=True)
class SessionState:
    """Result of reading a session token on one request.

    `token` is set only when the claims changed and the caller must re-issue
    the cookie. `view` is the shell itself when there was nothing to project.
    """

    claims: Claims | None
    view: SessionView | SessionShell
    token: str | None = None


class AuthService:
    """Coordinates resolver, verifier, tracker, issuer and projector."""

    def __init__(
        self,
        store: AccountStore,
        gateway: OtpGateway | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.settings = settings or get_settings()
        self.tracker = VerificationTracker(store)
        self.verifier = CredentialVerifier(store, self.tracker, gateway=gateway, settings=self.settings)
        self.refresher = TokenRefresher(store)
        self.projector = SessionProjector(store)

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def authenticate(
        self,
        identifier: str | None,
        *,
        login_type: LoginType | str | None = None,
        password: str | None = None,
        otp: str | None = None,
        access_token: str | None = None,
    ) -> Account | None:
        """Login entry point. Returns the account, or None for any rejection."""
        credential = parse_credential(
            identifier,
            login_type=login_type,
            password=password,
            otp=otp,
            access_token=access_token,
            otp_length=self.settings.otp_length,
        )
        if credential is None:
            logger.info("Login rejected: incomplete credentials")
            return None
        return self.verifier.verify(credential)

    def issue(self, account: Account) -> tuple[Claims, str]:
        """Mint claims for an accepted account and sign them into a token."""
        claims = mint(account)
        return claims, encode_claims(claims)

    # ------------------------------------------------------------------
    # Per-request session handling
    # ------------------------------------------------------------------

    def refresh(self, claims: Claims, trigger: str | None = None) -> Claims:
        return self.refresher.refresh(claims, trigger)

    def project(self, claims: Claims | None, shell: SessionShell) -> SessionView | SessionShell:
        return self.projector.project(claims, shell)

    def read_session(self, token: str | None, trigger: str | None = None) -> SessionState:
        """Decode, conditionally refresh, and project a session token.

        An absent or invalid token yields an empty shell and no claims.
        """
        claims = decode_claims(token) if token else None
        if claims is None:
            return SessionState(claims=None, view=SessionShell())

        refreshed = self.refresh(claims, trigger)
        new_token = encode_claims(refreshed) if refreshed != claims else None
        shell = SessionShell(
            name=refreshed.name,
            email=refreshed.email,
            expires=token_expiry(new_token or token),
        )
        return SessionState(claims=refreshed, view=self.project(refreshed, shell), token=new_token)

    # ------------------------------------------------------------------
    # Verification queries
    # ------------------------------------------------------------------

    def can_send_otp(self, identifier: str) -> bool:
        return self.tracker.can_send_otp(identifier)

    def verification_status(self, account_id: str) -> dict[str, str | None] | None:
        return self.tracker.status(account_id)

    def has_verified_channel(self, account_id: str) -> bool:
        """True once either channel has been proven; gates actions that need a verified account."""
        return self.tracker.has_verified_channel(account_id)
