"""Environment configuration for the Scholar Hub service."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet

ROOT = Path(__file__).resolve().parents[1]
DEFAULT_BASE_URL = "https://api.apper.io/v1"


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    app_env: str = "dev"
    project_id: str = ""
    public_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    http_timeout: float = 30.0
    page_limit: int = 1000
    mock_latency_ms: float = 300.0
    mock_jitter_ms: float = 0.0
    seed_dir: str = ""
    cors_origins: FrozenSet[str] = field(default_factory=frozenset)
    req_slow_ms: float = 250.0
    log_level: str = "INFO"

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def use_remote(self) -> bool:
        return bool(self.project_id and self.public_key)


def load_settings(env_file: Path | None = None) -> Settings:
    _load_env_file(env_file or ROOT / "app" / ".env")
    return Settings(
        app_env=os.getenv("APP_ENV", os.getenv("ENV", "dev")).strip().lower() or "dev",
        project_id=os.getenv("APPER_PROJECT_ID", "").strip(),
        public_key=os.getenv("APPER_PUBLIC_KEY", "").strip(),
        base_url=os.getenv("APPER_BASE_URL", "").strip() or DEFAULT_BASE_URL,
        http_timeout=_env_float("SCHOLAR_HTTP_TIMEOUT", 30.0),
        page_limit=max(_env_int("SCHOLAR_PAGE_LIMIT", 1000), 1),
        mock_latency_ms=max(_env_float("SCHOLAR_MOCK_LATENCY_MS", 300.0), 0.0),
        mock_jitter_ms=max(_env_float("SCHOLAR_MOCK_JITTER_MS", 0.0), 0.0),
        seed_dir=os.getenv("SCHOLAR_SEED_DIR", "").strip(),
        cors_origins=frozenset(
            origin.strip().rstrip("/") for origin in os.getenv("SCHOLAR_CORS_ORIGINS", "").split(",") if origin.strip()
        ),
        req_slow_ms=_env_float("SCHOLAR_REQ_SLOW_MS", 250.0),
        log_level=os.getenv("SCHOLAR_LOG_LEVEL", "").strip().upper() or "INFO",
    )
