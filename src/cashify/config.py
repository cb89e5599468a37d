"""Runtime settings read from the environment."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_LOCK_TIMEOUT = 5.0


@dataclass(frozen=True)
class Settings:
    """Cashify settings.

    Attributes:
        database_url: SQLAlchemy URL of the ledger database
        lock_timeout: Seconds to wait for an account lock before failing with BUSY
        log_level: Level name for the ``cashify`` logger
        log_format: ``json`` or ``text``
    """

    database_url: str
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT
    log_level: str = "WARNING"
    log_format: str = "json"

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        database_path: Optional[str] = None,
    ) -> "Settings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``
            database_path: Explicit SQLite path, wins over the environment

        Raises:
            ValueError: If CASHIFY_LOCK_TIMEOUT is not a positive number
        """
        env = os.environ if environ is None else environ

        if database_path is not None:
            database_url = f"sqlite:///{database_path}"
        elif env.get("CASHIFY_DATABASE_URL"):
            database_url = env["CASHIFY_DATABASE_URL"]
        else:
            database_url = f"sqlite:///{default_database_path(env)}"

        raw_timeout = env.get("CASHIFY_LOCK_TIMEOUT")
        lock_timeout = DEFAULT_LOCK_TIMEOUT
        if raw_timeout:
            try:
                lock_timeout = float(raw_timeout)
            except ValueError:
                raise ValueError(f"Invalid CASHIFY_LOCK_TIMEOUT '{raw_timeout}'")
            if lock_timeout <= 0:
                raise ValueError("CASHIFY_LOCK_TIMEOUT must be positive")

        return cls(
            database_url=database_url,
            lock_timeout=lock_timeout,
            log_level=env.get("CASHIFY_LOG_LEVEL", "WARNING").upper(),
            log_format=env.get("CASHIFY_LOG_FORMAT", "json").lower(),
        )


def default_database_path(environ: Mapping[str, str]) -> str:
    """Resolve CASHIFY_DB_PATH, defaulting to ~/.cashify/cashify.db."""
    database_path = environ.get("CASHIFY_DB_PATH")
    if database_path:
        return database_path

    db_dir = Path.home() / ".cashify"
    db_dir.mkdir(exist_ok=True)
    return str(db_dir / "cashify.db")
