import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv, find_dotenv

# Load .env from project root before any settings are read
load_dotenv(find_dotenv())

DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 1000
DEFAULT_INTERVAL = "1s"
INTERVAL_REGEX = r"^(\d+)(us|ms|s|m)$"
ANSI_ESCAPE_REGEX = r"\x1b\[[0-9;]*m"


def _origins(raw: str) -> List[str]:
    return [o.strip() for o in raw.split(",") if o.strip()]


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    max_sessions: int = 64
    session_ttl: float = 86400.0  # seconds, 0 disables expiry
    parse_workers: int = 2
    max_upload_bytes: int = 500 * 1024 * 1024
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


def load_settings() -> Settings:
    """Build Settings from GSTLOG_* environment variables."""
    return Settings(
        host=os.getenv("GSTLOG_HOST", Settings.host),
        port=int(os.getenv("GSTLOG_PORT", Settings.port)),
        log_level=os.getenv("GSTLOG_LOG_LEVEL", Settings.log_level).upper(),
        max_sessions=int(os.getenv("GSTLOG_MAX_SESSIONS", Settings.max_sessions)),
        session_ttl=float(os.getenv("GSTLOG_SESSION_TTL", Settings.session_ttl)),
        parse_workers=int(os.getenv("GSTLOG_PARSE_WORKERS", Settings.parse_workers)),
        max_upload_bytes=int(os.getenv("GSTLOG_MAX_UPLOAD_BYTES", Settings.max_upload_bytes)),
        cors_origins=_origins(os.getenv("GSTLOG_CORS_ORIGINS", "*")),
    )
