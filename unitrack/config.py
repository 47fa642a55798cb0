"""
Runtime configuration.

All settings come from environment variables (optionally via a local .env
file), so the same code runs as a local tracker and as a read-only demo:

    UNITRACK_DATA_DIR   directory holding workspace.json and uploads/ (default ./data)
    UNITRACK_READ_ONLY  "1", "true" or "yes" disables every mutating endpoint
    UNITRACK_API_URL    base URL the client talks to (default http://127.0.0.1:8000/api)
    UNITRACK_LOG_LEVEL  logging level name (default INFO)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_API_URL = "http://127.0.0.1:8000/api"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    read_only: bool
    api_url: str
    log_level: str

    @property
    def workspace_file(self) -> Path:
        return self.data_dir / "workspace.json"

    @property
    def uploads_dir(self) -> Path:
        return self.data_dir / "uploads"


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in _TRUTHY


def load_settings() -> Settings:
    """
    Build Settings from the environment.

    A .env file in the working directory is read first; variables that are
    already set in the environment win over the file.
    """
    load_dotenv()

    data_dir = os.getenv("UNITRACK_DATA_DIR", "").strip() or "data"
    api_url = os.getenv("UNITRACK_API_URL", "").strip() or DEFAULT_API_URL
    log_level = os.getenv("UNITRACK_LOG_LEVEL", "").strip().upper() or "INFO"

    return Settings(
        data_dir=Path(data_dir).expanduser().resolve(),
        read_only=_env_flag("UNITRACK_READ_ONLY"),
        api_url=api_url.rstrip("/"),
        log_level=log_level,
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
