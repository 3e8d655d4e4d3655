"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for EduTech happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  Explicit construction: the lifespan in api/main.py reads the Settings once
      and passes plain values (secret, lifetime, URL, cost) into the
      constructors of TokenService, PasswordHasher and Database. Those
      components never call get_settings() themselves, so tests can build
      them with isolated secrets and in-memory stores.

Security notes:
  [M6] SECRET_KEY shorter than 32 chars is rejected outright. JWT HMAC
       signing relies on key entropy -- a short key weakens every token.

  [M7] In production mode (DEBUG not set or false), a missing SECRET_KEY is a
       hard startup failure. Dev mode generates a random key with a warning.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
audit/, store/, or services/.
"""

import logging
import re
import secrets
from datetime import timedelta
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("edutech.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'edutech.sqlite'}"

# ---------------------------------------------------------------------------
# Duration strings ("15m", "7d", "2 days", "3600")
# ---------------------------------------------------------------------------

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([a-z]+)?\s*$", re.IGNORECASE)

_UNIT_SECONDS: dict[str, float] = {
    "ms": 0.001,
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 24 * 60 * 60,
    "w": 7 * 24 * 60 * 60,
    "y": 365.25 * 24 * 60 * 60,
}

# Long unit names accepted alongside the short ones, e.g. "10 minutes".
_UNIT_ALIASES: dict[str, str] = {
    "milliseconds": "ms", "millisecond": "ms", "msecs": "ms", "msec": "ms",
    "seconds": "s", "second": "s", "secs": "s", "sec": "s",
    "minutes": "m", "minute": "m", "mins": "m", "min": "m",
    "hours": "h", "hour": "h", "hrs": "h", "hr": "h",
    "days": "d", "day": "d",
    "weeks": "w", "week": "w",
    "years": "y", "year": "y", "yrs": "y", "yr": "y",
}


def parse_duration(value: str | int) -> timedelta:
    """Convert a lifetime such as "15m", "7d" or "2 days" into a timedelta.

    A bare number (or digit string) is a number of seconds. Units are
    case-insensitive and may be short ("m") or long ("minutes"). Zero and
    negative durations are rejected.

    Raises ValueError for anything that does not parse.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, int):
        seconds: float = value
    else:
        match = _DURATION_RE.match(str(value))
        if match is None:
            raise ValueError(f"Invalid duration: {value!r}")
        amount, unit = match.groups()
        unit = (unit or "s").lower()
        unit = _UNIT_ALIASES.get(unit, unit)
        if unit not in _UNIT_SECONDS:
            raise ValueError(f"Unknown duration unit in {value!r}")
        seconds = float(amount) * _UNIT_SECONDS[unit]
    if seconds <= 0:
        raise ValueError(f"Duration must be positive: {value!r}")
    return timedelta(seconds=seconds)


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The validators enforce
    production-safety rules at startup.

    Environment variable name mapping: field names are uppercased automatically.
    E.g. `secret_key` reads from SECRET_KEY, `token_lifetime` from TOKEN_LIFETIME.
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

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    token_lifetime: str = "7d"
    bcrypt_rounds: int = 12

    # ------------------------------------------------------------------
    # Database
    # ------------------------------------------------------------------

    database_url: str = _DEFAULT_DB_URL
    # Upper bound on waiting for a connection or a write lock.
    db_timeout_seconds: float = 30.0

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    rate_limit_enabled: bool = True
    rate_limit: str = "100/15minutes"
    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # First-run seeding
    # ------------------------------------------------------------------

    seed_admin_email: str = "admin@example.com"
    seed_admin_password: str = "password123"
    seed_admin_name: str = "System Administrator"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("token_lifetime")
    @classmethod
    def validate_token_lifetime(cls, value: str) -> str:
        parse_duration(value)
        return value

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_bcrypt_rounds(cls, value: int) -> int:
        # bcrypt.gensalt() accepts 4..31
        if not 4 <= value <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        return value

    @field_validator("db_timeout_seconds")
    @classmethod
    def validate_db_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("DB_TIMEOUT_SECONDS must be positive.")
        return value

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce SECRET_KEY policy [M7].

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Tokens will not survive restart -- acceptable for local dev.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters [M6].
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
