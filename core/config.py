"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the backend happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Type coercion and validation are built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved. Dev mode (DEBUG=true) generates a signing key with a
      warning; production mode refuses to start without one.

Security notes:
  SECRET_KEY shorter than 32 chars is rejected outright. JWT signing relies on
  key entropy -- a short key weakens every token issued with it.

  The key is read here once and handed to auth.tokens.TokenService at startup.
  Nothing else holds a reference to it.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("onushilon.config")


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
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
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    database_url: str = "sqlite:///./onushilon.db"

    # ------------------------------------------------------------------
    # Credentials and tokens
    # ------------------------------------------------------------------

    # One day, matching the JWT_EXPIRE the service has always shipped with.
    token_expire_seconds: int = Field(default=86400, gt=0)
    bcrypt_rounds: int = Field(default=12, ge=4, le=16)

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    otp_ttl_seconds: int = Field(default=600, gt=0)
    # True answers 404 for unknown emails and 401 for deactivated accounts on
    # reset requests (account state is visible). False acknowledges every
    # reset request with the same response, whatever the account state.
    reveal_unknown_reset_email: bool = True

    # ------------------------------------------------------------------
    # Mail delivery (empty smtp_host means delivery is not configured)
    # ------------------------------------------------------------------

    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    smtp_timeout: float = 10.0
    mail_from: str = "Onushilon <no-reply@onushilon.com>"

    # ------------------------------------------------------------------
    # Initial admin (created on startup when no admin exists)
    # ------------------------------------------------------------------

    admin_email: str = "admin@onushilon.com"
    admin_password: str = ""
    admin_phone: str = "0000000000"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"
    reset_rate_limit: str = "5/minute"
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    allowed_hosts: list[str] = ["*"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Issued tokens will not survive a restart.

        Production mode: refuse to start if SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("WARNING: Using auto-generated SECRET_KEY. Tokens will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
