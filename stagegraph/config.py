"""Runtime configuration read from the environment (and a .env file)."""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()  # load environment variables from .env file

DEFAULT_DB_PATH = Path("data") / "stagegraph.db"
DEFAULT_SERVER_URL = "http://localhost:8000"

# flush after this many seconds without further policy edits
DEFAULT_DEBOUNCE_SECONDS = 1.0


@dataclass(frozen=True)
class Settings:
    db_path: Path
    server_url: str
    http_timeout: float
    debounce_seconds: float
    log_level: str
    cors_origins: tuple[str, ...]


def get_settings() -> Settings:
    """Build settings from the current environment.

    Read on every call so tests (and long-running servers) see changes.
    """
    return Settings(
        db_path=Path(os.getenv("STAGEGRAPH_DB_PATH", str(DEFAULT_DB_PATH))),
        server_url=os.getenv("STAGEGRAPH_SERVER_URL", DEFAULT_SERVER_URL).rstrip("/"),
        http_timeout=float(os.getenv("STAGEGRAPH_HTTP_TIMEOUT", "10.0")),
        debounce_seconds=float(
            os.getenv("STAGEGRAPH_DEBOUNCE_SECONDS", str(DEFAULT_DEBOUNCE_SECONDS))
        ),
        log_level=os.getenv("STAGEGRAPH_LOG_LEVEL", "INFO"),
        # comma-separated values for multiple origins, or "*" for all
        cors_origins=tuple(os.getenv("CORS_ORIGINS", "*").split(",")),
    )
