"""Configuration loading from environment variables and defaults."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

log = logging.getLogger(__name__)


def _env(key: str, default: str = "") -> str:
    return os.environ.get(key, default)


def _parse_sla_days(raw: str) -> dict[str, int]:
    """Parse ``"proposal=14,negotiation=10"`` into a stage -> days mapping."""
    result: dict[str, int] = {}
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        stage, _, days = part.partition("=")
        try:
            result[stage.strip()] = int(days)
        except ValueError:
            log.warning("Ignoring invalid SLA entry %r", part)
    return result


# Database
DB_PATH = Path(_env("WORKBOARD_DB_PATH", "") or str(_PROJECT_ROOT / "data" / "workboard.db"))

# Authentication (identity is resolved upstream; see web.middleware)
AUTH_ENABLED = _env("WORKBOARD_AUTH_ENABLED", "true").lower() in ("true", "1", "yes")

# Logging
LOG_LEVEL = _env("WORKBOARD_LOG_LEVEL", "INFO").upper()

# Query executor page size (fixed)
PAGE_SIZE = 50

# SLA thresholds per deal stage, in days. Tenants override these through
# settings.set_sla_days().
DEFAULT_SLA_DAYS = _parse_sla_days(_env("WORKBOARD_DEFAULT_SLA_DAYS", "proposal=14"))

# Sentinel for "no activity recorded" in last_activity_days
NO_ACTIVITY_DAYS = 999
