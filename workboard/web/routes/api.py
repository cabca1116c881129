"""JSON API routes for the workboard grid (/api/v1/)."""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from ...database import get_connection
from ...errors import RecordNotFound, StoreUnavailable
from ...store import EntityStore
from ...workboards.cell_edit import apply_edit
from ...workboards.crud import (
    create_from_template,
    create_workboard,
    delete_workboard,
    duplicate_workboard,
    get_workboard,
    list_workboards,
    save_workboard,
    update_workboard_details,
)
from ...workboards.engine import execute_workboard
from ...workboards.filters import check_filter, describe_filter, operators_for, validate_filter
from ...workboards.registry import available_columns, fields_for, parse_entity_type
from ...workboards.templates import list_templates
from ..dependencies import get_current_user, get_sla, get_store

router = APIRouter()

_DETAIL_FIELDS = ("name", "description", "is_shared", "sort_column", "sort_direction")


def _ids(user: dict) -> tuple[str, str]:
    return user["customer_id"], user["id"]


async def _json_body(request: Request) -> dict | None:
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _invalid_json() -> JSONResponse:
    return JSONResponse({"error": "Invalid JSON", "code": "invalid_json"}, status_code=400)


def _workboard_json(wb) -> dict:
    data = wb.to_dict()
    data["filter_labels"] = [describe_filter(f, wb.entity_type) for f in wb.filters]
    return data


# ------------------------------------------------------------------
# Health
# ------------------------------------------------------------------

@router.get("/health")
def health():
    return {"status": "ok", "version": "1.0.0"}


# ------------------------------------------------------------------
# Field registry
# ------------------------------------------------------------------

@router.get("/entity-types/{entity_type}/columns")
def entity_columns(
    entity_type: str,
    workboard_id: str | None = Query(None),
    user: dict = Depends(get_current_user),
):
    """Column catalog, minus columns already present when a workboard is given."""
    et = parse_entity_type(entity_type)
    if workboard_id:
        cid, uid = _ids(user)
        with get_connection() as conn:
            wb = get_workboard(conn, workboard_id, cid, uid)
        catalog = available_columns(et, wb.columns)
    else:
        catalog = fields_for(et)
    return [c.to_dict() for c in catalog]


@router.get("/entity-types/{entity_type}/operators")
def entity_operators(entity_type: str, field: str = Query(...)):
    return [op.value for op in operators_for(entity_type, field)]


@router.post("/entity-types/{entity_type}/filters")
async def validate_filter_api(request: Request, entity_type: str):
    """Validate one filter before it's added to the filter bar."""
    body = await _json_body(request)
    if body is None:
        return _invalid_json()
    filt = check_filter(entity_type, body)
    label = describe_filter(validate_filter(entity_type, filt), entity_type)
    return {"filter": filt.to_dict(), "label": label}


# ------------------------------------------------------------------
# Workboards
# ------------------------------------------------------------------

@router.get("/workboards")
def list_workboards_api(
    entity_type: str | None = Query(None),
    user: dict = Depends(get_current_user),
):
    cid, uid = _ids(user)
    with get_connection() as conn:
        boards = list_workboards(conn, cid, uid, entity_type)
    return [_workboard_json(wb) for wb in boards]


@router.get("/workboards/templates")
def list_templates_api():
    return [t.to_dict() for t in list_templates()]


@router.post("/workboards")
async def create_workboard_api(request: Request, user: dict = Depends(get_current_user)):
    """Create a workboard, either from scratch or from ``template_id``."""
    body = await _json_body(request)
    if body is None:
        return _invalid_json()
    cid, uid = _ids(user)

    with get_connection() as conn:
        if body.get("template_id"):
            wb = create_from_template(
                conn,
                customer_id=cid,
                user_id=uid,
                template_id=body["template_id"],
                name=body.get("name"),
                owner_name=body.get("owner_name"),
                is_shared=bool(body.get("is_shared")),
            )
        else:
            wb = create_workboard(
                conn,
                customer_id=cid,
                user_id=uid,
                name=body.get("name", ""),
                entity_type=body.get("entity_type", ""),
                columns=body.get("columns"),
                filters=body.get("filters"),
                description=body.get("description"),
                is_shared=bool(body.get("is_shared")),
                sort_column=body.get("sort_column"),
                sort_direction=body.get("sort_direction") or "asc",
            )
    return JSONResponse(_workboard_json(wb), status_code=201)


@router.get("/workboards/{workboard_id}")
def workboard_detail(workboard_id: str, user: dict = Depends(get_current_user)):
    cid, uid = _ids(user)
    with get_connection() as conn:
        wb = get_workboard(conn, workboard_id, cid, uid)
    return _workboard_json(wb)


@router.put("/workboards/{workboard_id}")
async def save_workboard_api(
    request: Request, workboard_id: str, user: dict = Depends(get_current_user),
):
    """Save columns and filters (replaces both)."""
    body = await _json_body(request)
    if body is None:
        return _invalid_json()
    columns = body.get("columns")
    filters = body.get("filters", [])
    if not isinstance(columns, list) or not isinstance(filters, list):
        return JSONResponse(
            {"error": "columns and filters must be lists", "code": "invalid_json"},
            status_code=400,
        )
    expected = body.get("expected_version")
    if expected is not None and (isinstance(expected, bool) or not isinstance(expected, int)):
        return JSONResponse(
            {"error": "expected_version must be an integer", "code": "invalid_json"},
            status_code=400,
        )
    cid, uid = _ids(user)
    with get_connection() as conn:
        wb = save_workboard(
            conn, workboard_id, cid, columns, filters,
            user_id=uid,
            expected_version=expected,
        )
    return _workboard_json(wb)


@router.patch("/workboards/{workboard_id}")
async def update_workboard_api(
    request: Request, workboard_id: str, user: dict = Depends(get_current_user),
):
    """Update name, description, sharing or stored sort."""
    body = await _json_body(request)
    if body is None:
        return _invalid_json()
    updates = {k: v for k, v in body.items() if k in _DETAIL_FIELDS}
    cid, uid = _ids(user)
    with get_connection() as conn:
        wb = update_workboard_details(conn, workboard_id, cid, user_id=uid, **updates)
    return _workboard_json(wb)


@router.delete("/workboards/{workboard_id}")
def delete_workboard_api(workboard_id: str, user: dict = Depends(get_current_user)):
    cid, uid = _ids(user)
    with get_connection() as conn:
        delete_workboard(conn, workboard_id, cid, user_id=uid)
    return {"ok": True}


@router.post("/workboards/{workboard_id}/duplicate")
async def duplicate_workboard_api(
    request: Request, workboard_id: str, user: dict = Depends(get_current_user),
):
    body = await _json_body(request) or {}
    cid, uid = _ids(user)
    with get_connection() as conn:
        wb = duplicate_workboard(conn, workboard_id, cid, uid, name=body.get("name"))
    return JSONResponse(_workboard_json(wb), status_code=201)


# ------------------------------------------------------------------
# Data + inline editing
# ------------------------------------------------------------------

@router.get("/workboards/{workboard_id}/data")
def workboard_data(
    workboard_id: str,
    page: int = Query(1),
    sort_column: str | None = Query(None),
    sort_direction: str = Query("asc"),
    filters: str = Query(""),
    user: dict = Depends(get_current_user),
    store: EntityStore = Depends(get_store),
    sla: dict = Depends(get_sla),
):
    """One page of rows. ``filters`` is a JSON array of unsaved filters."""
    extra_filters: list = []
    if filters:
        try:
            extra_filters = json.loads(filters)
        except json.JSONDecodeError:
            return JSONResponse(
                {"error": "filters must be a JSON array", "code": "invalid_json"},
                status_code=400,
            )
        if not isinstance(extra_filters, list):
            return JSONResponse(
                {"error": "filters must be a JSON array", "code": "invalid_json"},
                status_code=400,
            )

    cid, uid = _ids(user)
    with get_connection() as conn:
        wb = get_workboard(conn, workboard_id, cid, uid)

    result = execute_workboard(
        store, wb,
        page=page,
        sort_field=sort_column,
        sort_direction=sort_direction if sort_column else None,
        extra_filters=extra_filters,
        sla_thresholds=sla,
    )
    return result.to_dict()


@router.post("/workboards/{workboard_id}/cell-edit")
async def cell_edit_api(
    request: Request,
    workboard_id: str,
    user: dict = Depends(get_current_user),
    store: EntityStore = Depends(get_store),
    sla: dict = Depends(get_sla),
):
    """Update a single field of one row via inline edit."""
    body = await _json_body(request)
    if body is None:
        return JSONResponse({"ok": False, "error": "Invalid JSON"}, status_code=400)

    row_id = body.get("row_id", "")
    field_key = body.get("field", "")
    if not row_id or not field_key:
        return JSONResponse(
            {"ok": False, "code": "invalid_json", "error": "row_id and field are required"},
            status_code=400,
        )

    cid, uid = _ids(user)
    with get_connection() as conn:
        wb = get_workboard(conn, workboard_id, cid, uid)

    try:
        result = apply_edit(store, wb, row_id, field_key, body.get("value"), sla_thresholds=sla)
    except (RecordNotFound, StoreUnavailable) as exc:
        return JSONResponse(
            {"ok": False, "code": exc.code, "error": str(exc)},
            status_code=exc.status_code,
        )

    return JSONResponse(result.to_dict(), status_code=200 if result.accepted else 400)
