"""Tenant identity middleware for the workboard API."""

from __future__ import annotations

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from .. import config

log = logging.getLogger(__name__)

# Paths that never require identity
_PUBLIC_PATHS = ("/api/v1/health", "/docs", "/openapi.json")

CUSTOMER_HEADER = "X-Customer-Id"
USER_HEADER = "X-User-Id"


class TenantMiddleware(BaseHTTPMiddleware):
    """Resolve the calling user from gateway headers into request.state."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request.state.user = None
        request.state.customer_id = None

        if request.url.path in _PUBLIC_PATHS:
            return await call_next(request)

        if not config.AUTH_ENABLED:
            return await self._bypass_mode(request, call_next)

        from ..identity import get_user

        customer_id = request.headers.get(CUSTOMER_HEADER, "")
        user_id = request.headers.get(USER_HEADER, "")
        user = get_user(customer_id, user_id) if customer_id and user_id else None
        if not user:
            log.info("Rejected request to %s: unknown identity", request.url.path)
            return JSONResponse(
                {"error": "Not authenticated", "code": "not_authenticated"},
                status_code=401,
            )

        request.state.user = {
            "id": user["id"],
            "email": user["email"],
            "name": user.get("name") or "",
            "role": user.get("role", "user"),
            "customer_id": user["customer_id"],
        }
        request.state.customer_id = user["customer_id"]
        return await call_next(request)

    async def _bypass_mode(self, request: Request, call_next) -> Response:
        """WORKBOARD_AUTH_ENABLED=false: inject the first active user."""
        from ..identity import get_current_user

        user = get_current_user()
        if user:
            request.state.user = {
                "id": user["id"],
                "email": user["email"],
                "name": user.get("name") or "",
                "role": user.get("role", "admin"),
                "customer_id": user.get("customer_id", ""),
            }
            request.state.customer_id = user.get("customer_id", "")
        else:
            # Synthetic admin for empty DB
            request.state.user = {
                "id": "synthetic-admin",
                "email": "admin@localhost",
                "name": "Admin",
                "role": "admin",
                "customer_id": "",
            }
            request.state.customer_id = ""

        return await call_next(request)
