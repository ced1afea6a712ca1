"""Application configuration module."""

import os
import secrets
import warnings
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DATA_DIR = Path(__file__).parent.parent / "data"

_TRUE_VALUES = ("true", "1", "yes")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in _TRUE_VALUES


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self):
        """Initialize configuration from environment variables."""
        self.app_env: str = os.getenv("APP_ENV", "development").lower()

        # Database
        self.database_url: str = os.getenv(
            "DATABASE_URL", f"sqlite+aiosqlite:///{DATA_DIR / 'reservation.db'}"
        )

        # Secret for the framework's reset/verification tokens.
        # In production, ALWAYS set SECRET_KEY!
        secret = os.getenv("SECRET_KEY")
        if not secret:
            secret = secrets.token_hex(32)
            warnings.warn(
                "SECRET_KEY not set in environment. Using random secret. "
                "Password reset tokens will be invalidated on restart. Set SECRET_KEY for production!",
                RuntimeWarning,
            )
        self.secret_key: str = secret

        # Session settings
        self.session_cookie_name: str = os.getenv("SESSION_COOKIE_NAME", "SESSION")
        self.session_max_inactive_interval: int = int(
            os.getenv("SESSION_MAX_INACTIVE_INTERVAL", "1800")
        )  # seconds
        self.session_cookie_secure: bool = _env_bool("SESSION_COOKIE_SECURE", "false")
        self.session_cookie_samesite: str = os.getenv("SESSION_COOKIE_SAMESITE", "lax").lower()

        # Diagnostics endpoint is off by default in production
        self.expose_session_debug: bool = _env_bool(
            "EXPOSE_SESSION_DEBUG", "false" if self.app_env == "production" else "true"
        )

        # API server
        self.api_host: str = os.getenv("API_HOST", "0.0.0.0")
        self.api_port: int = int(os.getenv("API_PORT", "8080"))
        self.cors_origins: List[str] = [
            origin.strip()
            for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
            if origin.strip()
        ]

        # Logging
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
        self.log_file: Optional[str] = os.getenv("LOG_FILE") or None

        # Validation
        self.password_min_length: int = int(os.getenv("PASSWORD_MIN_LENGTH", "6"))

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    def validate(self) -> tuple[bool, Optional[str]]:
        """Validate configuration values.

        Returns:
            Tuple of (is_valid, error_message).
        """
        if self.app_env not in ["development", "testing", "production"]:
            return (
                False,
                f"APP_ENV must be 'development', 'testing', or 'production', got '{self.app_env}'",
            )

        if self.session_max_inactive_interval < 60:
            return False, "SESSION_MAX_INACTIVE_INTERVAL must be at least 60 seconds"

        if self.session_cookie_samesite not in ["lax", "strict", "none"]:
            return False, "SESSION_COOKIE_SAMESITE must be 'lax', 'strict', or 'none'"

        if self.session_cookie_samesite == "none" and not self.session_cookie_secure:
            return False, "SESSION_COOKIE_SECURE is required when SESSION_COOKIE_SAMESITE=none"

        if self.api_port < 1024 or self.api_port > 65535:
            return False, "API_PORT must be between 1024 and 65535"

        if self.password_min_length < 1:
            return False, "PASSWORD_MIN_LENGTH must be positive"

        if self.log_level not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            return False, f"LOG_LEVEL is not a valid logging level: '{self.log_level}'"

        return True, None

    def __repr__(self) -> str:
        """String representation of config."""
        return (
            f"Config(env={self.app_env}, "
            f"database={self.database_url.split('://')[0]}, "
            f"session_timeout={self.session_max_inactive_interval}s, "
            f"port={self.api_port})"
        )


_config: Optional[Config] = None


def get_config() -> Config:
    """Get the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = Config()
    return _config
