"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the inventory service happen here. No module
should call os.getenv() or os.environ.get() directly -- import get_settings()
instead, then hand the values to the services that need them at construction
time.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Type coercion and validation are built in.

  Constructor injection: Settings is frozen. TokenService, RateLimiter and
      AuthService receive plain values from it in api/main.py's lifespan; none
      of them reads configuration on its own.

Security notes:
  SECRET_KEY has no default and no generated fallback, in any mode. A missing
  key is a fatal startup error. Keys shorter than 32 chars are rejected too:
  HMAC-SHA256 token signing relies on key entropy.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/ or inventory/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("inventory.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'inventory.db'}"

MIN_SECRET_LENGTH = 32


class ConfigError(Exception):
    """Fatal configuration problem detected at startup.

    Defined in core/ so configuration loading does not depend on auth/. The
    auth error taxonomy re-exports it as auth.errors.ConfigError.
    """

    code = "config_error"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Every field except secret_key has a documented default. The validator
    below enforces the secret policy; there is no path that
    produces a Settings instance without a usable secret.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    secret_key: str = ""
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Session tokens
    # ------------------------------------------------------------------

    token_ttl_seconds: int = Field(default=24 * 60 * 60, gt=0)

    # ------------------------------------------------------------------
    # Password hashing
    # ------------------------------------------------------------------

    # bcrypt work factor (log2 rounds). 12 is the current common baseline;
    # below 10 is refused.
    bcrypt_rounds: int = Field(default=12, ge=10, le=31)

    # ------------------------------------------------------------------
    # Rate limiting (fixed window, per client address)
    # ------------------------------------------------------------------

    rate_limit_requests: int = Field(default=10, gt=0)
    rate_limit_window_seconds: int = Field(default=60, gt=0)
    # limits storage URI, same format as slowapi's Limiter(storage_uri=...).
    rate_limit_storage_uri: str = "memory://"

    # ------------------------------------------------------------------
    # Blocking dependencies (credential store, bcrypt)
    # ------------------------------------------------------------------

    auth_timeout_seconds: float = Field(default=5.0, gt=0)
    auth_workers: int = Field(default=8, gt=0)

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Refuse to build settings without a strong signing secret."""
        if not self.secret_key:
            raise ValueError("SECRET_KEY is required. Set SECRET_KEY in your environment or .env file.")
        if len(self.secret_key) < MIN_SECRET_LENGTH:
            raise ValueError(f"SECRET_KEY must be at least {MIN_SECRET_LENGTH} characters.")
        return self

    @property
    def secret_bytes(self) -> bytes:
        return self.secret_key.encode("utf-8")


def load_settings(**overrides) -> Settings:
    """Build a Settings instance, turning validation failures into ConfigError.

    Keyword overrides take precedence over the environment; tests use them to
    construct settings without touching os.environ.
    """
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        # Only field names and messages are logged; input values may hold the secret.
        problems = "; ".join(f"{'.'.join(str(p) for p in e['loc']) or 'settings'}: {e['msg']}" for e in exc.errors())
        logger.critical("Invalid configuration: %s", problems)
        raise ConfigError(problems) from None


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return load_settings()
