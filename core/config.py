"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads happen here. No module should call os.getenv()
or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY, otp_gateway_url -> OTP_GATEWAY_URL).

  @model_validator(mode="after"): Cross-field validation once every field is
      resolved. Dev mode generates a signing key with a warning, production
      mode refuses to start without one.

Security notes:
  SECRET_KEY shorter than 32 chars is rejected outright. Session claims are
  signed with it, and a short key weakens every token issued.

  The OTP fallback code is accepted in every environment except production.
  It exists so local and staging logins work without the SMS/e-mail gateway.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import secrets
from functools import lru_cache
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("grihome.config")


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    environment: Literal["local", "staging", "production"] = "local"
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    database_url: str = "sqlite:///grihome_accounts.db"

    # ------------------------------------------------------------------
    # Session tokens
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    # 30 days, matching the lifetime of a remembered browser session.
    token_expire_seconds: int = 30 * 24 * 3600

    # ------------------------------------------------------------------
    # One-time codes
    # ------------------------------------------------------------------

    otp_length: int = 6
    otp_fallback_code: str = "123456"

    # Gateway used to confirm widget-issued access tokens. Empty auth key
    # means the gateway path is disabled and only the fallback code works.
    otp_gateway_url: str = "https://control.msg91.com/api/v5/widget/verifyAccessToken"
    otp_gateway_auth_key: str = ""
    otp_gateway_timeout: float = 10.0

    # ------------------------------------------------------------------
    # Derived
    # ------------------------------------------------------------------

    @property
    def otp_fallback_enabled(self) -> bool:
        """True in local and staging environments, never in production."""
        return self.environment != "production" and bool(self.otp_fallback_code)

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Sessions will not survive restart -- acceptable for local dev.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning(
                    "WARNING: Using auto-generated SECRET_KEY. " "Sessions will not persist across restarts."
                )
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self

    @model_validator(mode="after")
    def validate_otp_policy(self) -> "Settings":
        """Reject a fallback code that could never pass the OTP shape check."""
        if self.otp_length < 4:
            raise ValueError("OTP_LENGTH must be at least 4 digits.")
        if self.otp_fallback_code and (
            len(self.otp_fallback_code) != self.otp_length or not self.otp_fallback_code.isdigit()
        ):
            raise ValueError(f"OTP_FALLBACK_CODE must be exactly {self.otp_length} digits.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
