"""
auth/gateway.py -- Client for the OTP gateway's access-token verification.

The OTP widget verifies the user's code out-of-band and hands the browser an
access token. This module confirms that token server-side and reports which
identifier (and channel) it proves. Only the verify-token contract is
consumed; sending codes is not part of this service.

Failure model:
  - Gateway says no (non-2xx, or a body with type == "error")
        -> GatewayResult(success=False). This is a credential rejection.
  - Network error, timeout, or an unparseable body
        -> GatewayError. This is a transport failure and propagates.
  One attempt per call, no retry. Timeout comes from OTP_GATEWAY_TIMEOUT.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from auth.identifiers import channel_for
from auth.models import GatewayResult, VerificationChannel
from core.config import Settings, get_settings

logger = logging.getLogger("grihome.auth.gateway")


class GatewayError(RuntimeError):
    """The OTP gateway could not be reached or returned an unusable response."""


class OtpGateway:
    """Verifies widget access tokens against the OTP provider.

    One requests.Session per instance for connection pooling. The service
    builds a single OtpGateway at startup and shares it across requests.
    """

    def __init__(self, settings: Settings | None = None, session: requests.Session | None = None) -> None:
        cfg = settings or get_settings()
        self.url = cfg.otp_gateway_url
        self.auth_key = cfg.otp_gateway_auth_key
        self.timeout = cfg.otp_gateway_timeout
        self._session = session or requests.Session()
        self._session.max_redirects = 3

    @property
    def configured(self) -> bool:
        return bool(self.url and self.auth_key)

    def verify_token(self, token: str) -> GatewayResult:
        """Confirm an access token with the gateway.

        Raises:
            GatewayError: gateway not configured, unreachable, timed out,
                or answered with something that is not JSON.
        """
        if not self.configured:
            raise GatewayError("OTP gateway is not configured (OTP_GATEWAY_AUTH_KEY is empty)")

        try:
            resp = self._session.post(
                self.url,
                json={"authkey": self.auth_key, "access-token": token},
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("OTP gateway request failed: %s", exc)
            raise GatewayError("OTP gateway request failed") from exc

        try:
            data: dict[str, Any] = resp.json()
        except ValueError as exc:
            logger.error("OTP gateway returned non-JSON body (status %d)", resp.status_code)
            raise GatewayError("OTP gateway returned an invalid response") from exc

        if not resp.ok or data.get("type") == "error":
            logger.info("OTP gateway rejected token (status %d)", resp.status_code)
            return GatewayResult(success=False, message=str(data.get("message") or "Token verification failed"))

        identifier = data.get("identifier")
        return GatewayResult(
            success=True,
            identifier=identifier,
            channel=_parse_channel(data.get("channel") or data.get("type"), identifier),
            message=str(data.get("message") or "Token verified successfully"),
        )


def _parse_channel(raw: Any, identifier: str | None) -> VerificationChannel | None:
    """Map the gateway's channel label to a VerificationChannel.

    Falls back to classifying the identifier when the label is missing or
    not one we know.
    """
    if raw in (VerificationChannel.email.value, VerificationChannel.mobile.value):
        return VerificationChannel(raw)
    if identifier:
        return channel_for(identifier)
    return None
