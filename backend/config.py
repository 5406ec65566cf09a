import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv

from projector import CorrelationMode

# Load environment variables if present
load_dotenv()

DEFAULT_CORS_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:3000",
    "http://127.0.0.1:5173",
    "http://127.0.0.1:3000",
]


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _correlation_mode_env(name: str) -> CorrelationMode:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return CorrelationMode.INDEPENDENT
    try:
        return CorrelationMode(raw)
    except ValueError:
        allowed = ", ".join(m.value for m in CorrelationMode)
        raise ValueError(f"{name} must be one of {allowed}, got {raw!r}")


def _origins_env(name: str) -> List[str]:
    raw = os.getenv(name, "")
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    return origins or list(DEFAULT_CORS_ORIGINS)


@dataclass(frozen=True)
class Settings:
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    google_cloud_project: Optional[str] = None
    google_cloud_location: str = "us-central1"
    max_upload_bytes: int = 10 * 1024 * 1024
    chart_max_attempts: int = 3
    correlation_mode: CorrelationMode = CorrelationMode.INDEPENDENT
    cors_allowed_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    log_level: str = "INFO"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY"),
            gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
            google_cloud_project=os.getenv("GOOGLE_CLOUD_PROJECT_ID"),
            google_cloud_location=os.getenv("GOOGLE_CLOUD_LOCATION") or "us-central1",
            max_upload_bytes=_int_env("MAX_UPLOAD_BYTES", 10 * 1024 * 1024),
            chart_max_attempts=_int_env("CHART_MAX_ATTEMPTS", 3),
            correlation_mode=_correlation_mode_env("CORRELATION_MODE"),
            cors_allowed_origins=_origins_env("CORS_ALLOWED_ORIGINS"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            port=_int_env("PORT", 8000),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
