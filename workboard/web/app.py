"""FastAPI application factory for the workboard API."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..database import init_db
from ..errors import WorkboardError
from ..store import EntityStore, SqliteEntityStore

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


async def _workboard_error(request: Request, exc: WorkboardError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(
        {"error": str(exc), "code": exc.code}, status_code=exc.status_code,
    )


def create_app(store: EntityStore | None = None) -> FastAPI:
    app = FastAPI(title="CRM Workboard", lifespan=lifespan)
    app.state.store = store or SqliteEntityStore()

    app.add_exception_handler(WorkboardError, _workboard_error)

    from .middleware import TenantMiddleware
    app.add_middleware(TenantMiddleware)

    from .routes import api
    app.include_router(api.router, prefix="/api/v1")

    return app
