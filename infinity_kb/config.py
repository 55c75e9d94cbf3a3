"""
Auth core configuration.

Loads settings from environment variables, optionally primed from a .env
file via python-dotenv. Environment variables override .env values, which
override the dataclass defaults.
"""

import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


@dataclass
class AuthConfig:
    """
    Configuration for the auth/access-control core.

    Session lifetimes: a plain login lasts ``session_ttl_hours``; a
    "remember me" login lasts ``remember_me_days``. The default lifetime
    must be shorter than the remembered one.
    """
    # Storage
    storage_backend: str = "sqlite"
    database_path: str = "data/infinity_kb.db"
    token_path: str = "data/session_token"

    # Sessions
    session_ttl_hours: int = 24
    remember_me_days: int = 30
    cleanup_interval_seconds: float = 300.0

    # Passwords
    min_password_length: int = 6
    password_hash_rounds: int = 12

    # Bootstrap
    seed_demo_data: bool = True

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    def __post_init__(self):
        self.validate()

    @property
    def session_ttl(self) -> timedelta:
        return timedelta(hours=self.session_ttl_hours)

    @property
    def remember_me_ttl(self) -> timedelta:
        return timedelta(days=self.remember_me_days)

    def validate(self) -> None:
        if self.storage_backend not in ("sqlite", "memory"):
            raise ValueError(
                f"Unknown storage backend '{self.storage_backend}' "
                f"(expected 'sqlite' or 'memory')"
            )
        if self.session_ttl_hours <= 0:
            raise ValueError("session_ttl_hours must be positive")
        if self.session_ttl >= self.remember_me_ttl:
            raise ValueError(
                "Default session lifetime must be shorter than the remember-me lifetime"
            )
        if self.cleanup_interval_seconds <= 0:
            raise ValueError("cleanup_interval_seconds must be positive")
        if self.min_password_length < 1:
            raise ValueError("min_password_length must be at least 1")
        # bcrypt accepts cost factors 4..31
        if not 4 <= self.password_hash_rounds <= 31:
            raise ValueError("password_hash_rounds must be between 4 and 31")

    @classmethod
    def from_env(cls) -> "AuthConfig":
        """Load configuration from environment variables."""
        return cls(
            storage_backend=os.getenv("INFINITY_KB_STORAGE", "sqlite").lower(),
            database_path=os.getenv("INFINITY_KB_DB_PATH", "data/infinity_kb.db"),
            token_path=os.getenv("INFINITY_KB_TOKEN_PATH", "data/session_token"),
            session_ttl_hours=int(os.getenv("SESSION_TTL_HOURS", "24")),
            remember_me_days=int(os.getenv("SESSION_REMEMBER_DAYS", "30")),
            cleanup_interval_seconds=float(os.getenv("SESSION_CLEANUP_INTERVAL", "300")),
            min_password_length=int(os.getenv("PASSWORD_MIN_LENGTH", "6")),
            password_hash_rounds=int(os.getenv("PASSWORD_HASH_ROUNDS", "12")),
            seed_demo_data=os.getenv("SEED_DEMO_DATA", "true").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_json=os.getenv("LOG_JSON", "false").lower() == "true",
        )


def load_config(env_file: Optional[str] = None) -> AuthConfig:
    """
    Load .env (if present) and build an AuthConfig from the environment.

    Args:
        env_file: Path to a .env file (default: .env in working directory)
    """
    if env_file:
        load_dotenv(env_file)
    else:
        env_path = Path.cwd() / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            logger.info(f"Loaded configuration from {env_path}")

    config = AuthConfig.from_env()
    logger.info(
        f"Loaded AuthConfig: storage={config.storage_backend}, "
        f"session_ttl={config.session_ttl}, remember_me_ttl={config.remember_me_ttl}"
    )
    return config
