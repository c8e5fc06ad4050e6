#!/usr/bin/env python3
"""Shared configuration for the studio sync service.

Centralizes settings that multiple integrations need access to. Values come
from the environment; a `.env` file in the project root is loaded first.
"""

import os
from datetime import datetime
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

# =============================================================================
# Paths
# =============================================================================
PROJECT_ROOT = Path(__file__).resolve().parent.parent

load_dotenv(PROJECT_ROOT / ".env")


def _env_path(name: str, default: Path) -> Path:
    raw = os.environ.get(name)
    if not raw:
        return default
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    return path


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


WORKSPACE = _env_path("STUDIO_WORKSPACE", PROJECT_ROOT / "workspace")
STATE_DIR = _env_path("STUDIO_STATE_DIR", WORKSPACE / "state")
STATIC_DIR = _env_path("STATIC_DIR", PROJECT_ROOT / "dist")
SYNC_LOG = STATE_DIR / "sync.log"

# =============================================================================
# Timezone
# =============================================================================
_TZ_NAME = os.environ.get("TIMEZONE", "").strip()
TIMEZONE: Optional[ZoneInfo] = ZoneInfo(_TZ_NAME) if _TZ_NAME else None

# =============================================================================
# Loop cadence
# =============================================================================
SYNC_INTERVAL_SECONDS = _env_float("SYNC_INTERVAL_SECONDS", 3.0)
# Long-poll window; kept below the tick interval so a stalled poll can't starve ticks
POLL_TIMEOUT_SECONDS = _env_float("POLL_TIMEOUT_SECONDS", 1.0)
TREND_MONITOR_MINUTES = _env_float("TREND_MONITOR_MINUTES", 60.0)

# =============================================================================
# HTTP
# =============================================================================
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "3000"))

# =============================================================================
# Credentials (fallbacks when the persisted settings leave them blank)
# =============================================================================
TELEGRAM_BOT_TOKEN = os.environ.get("TELEGRAM_BOT_TOKEN", "")
TELEGRAM_CHAT_ID = os.environ.get("TELEGRAM_CHAT_ID", "")
TELEGRAM_API_BASE = os.environ.get("TELEGRAM_API_BASE", "https://api.telegram.org")

GEMINI_API_KEY = os.environ.get("API_KEY") or os.environ.get("GEMINI_API_KEY", "")
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.5-flash")
CUSTOM_API_MODEL = os.environ.get("CUSTOM_API_MODEL", "gpt-3.5-turbo")

# =============================================================================
# Helpers
# =============================================================================

def now_local() -> datetime:
    """Get current time in configured timezone (system local if unset)."""
    if TIMEZONE is not None:
        return datetime.now(TIMEZONE)
    return datetime.now().astimezone()
