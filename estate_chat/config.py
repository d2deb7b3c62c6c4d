"""Project-level configuration and path helpers."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"
LOGS_DIR = PROJECT_ROOT / "logs"
BLOBS_DIR = DATA_DIR / "blobs"
DEFAULT_DB_PATH = DATA_DIR / "estate_chat.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def resolve_blobs_dir(env_value: PathLike | None = None) -> Path:
    """Resolve BLOBS_DIR to an absolute directory path."""
    if not env_value:
        return BLOBS_DIR

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


@dataclass
class Settings:
    """Runtime settings read from the environment."""

    database_url: str | None = None
    log_level: str = "INFO"
    api_host: str = "localhost"
    api_port: int = 8000
    blob_backend: str = "local"  # "local" or "http"
    blobs_dir: str | None = None
    blob_public_base_url: str = "http://localhost:8000/api/attachments/content"
    storage_api_url: str | None = None
    storage_api_key: str | None = None
    storage_bucket: str = "chat-attachments"
    support_email: str | None = None
    client_timeout: float = 10.0

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        return cls(
            database_url=os.getenv("DATABASE_URL"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            api_host=os.getenv("API_HOST", "localhost"),
            api_port=int(os.getenv("API_PORT", "8000")),
            blob_backend=os.getenv("BLOB_BACKEND", "local").lower(),
            blobs_dir=os.getenv("BLOBS_DIR"),
            blob_public_base_url=os.getenv(
                "BLOB_PUBLIC_BASE_URL",
                "http://localhost:8000/api/attachments/content",
            ),
            storage_api_url=os.getenv("STORAGE_API_URL"),
            storage_api_key=os.getenv("STORAGE_API_KEY"),
            storage_bucket=os.getenv("STORAGE_BUCKET", "chat-attachments"),
            support_email=os.getenv("SUPPORT_EMAIL"),
            client_timeout=float(os.getenv("CLIENT_TIMEOUT", "10")),
        )
