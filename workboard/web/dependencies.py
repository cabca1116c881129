"""FastAPI dependencies for request identity and shared services."""

from __future__ import annotations

from fastapi import HTTPException, Request

from ..settings import get_sla_thresholds
from ..store import EntityStore


def get_current_user(request: Request) -> dict:
    """Return the authenticated user or raise 401."""
    user = getattr(request.state, "user", None)
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user


def get_store(request: Request) -> EntityStore:
    return request.app.state.store


def get_sla(request: Request) -> dict[str, int]:
    """SLA thresholds for the calling tenant."""
    return get_sla_thresholds(request.state.customer_id or "")
