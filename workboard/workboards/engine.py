"""Query engine: runs a workboard definition against the entity store.

Records are fetched in full for the tenant, then processed in memory in a
fixed order: attach formulas, filter, sort, paginate. Formula values must
exist before filtering and sorting so both can use them.
"""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime, timezone

from .. import config
from ..errors import InvalidWorkboard
from ..models import (
    QueryResult,
    SortDirection,
    Workboard,
    WorkboardFilter,
)
from ..store import EntityStore
from .filters import check_filter, matches_all, validate_filter
from .formulas import attach_formulas, formulas_needed
from .registry import resolve_field
from .sorting import sort_rows

log = logging.getLogger(__name__)


def _resolve_sort(
    workboard: Workboard, sort_field: str | None, sort_direction,
) -> tuple[str | None, SortDirection]:
    if sort_field:
        if isinstance(sort_direction, SortDirection):
            return sort_field, sort_direction
        try:
            return sort_field, SortDirection(sort_direction or "asc")
        except ValueError:
            raise InvalidWorkboard(f"Invalid sort direction: {sort_direction!r}") from None
    return workboard.sort_column, workboard.sort_direction


def query_signature(
    workboard: Workboard,
    page: int,
    sort_field: str | None,
    sort_direction: SortDirection,
    filters: list[WorkboardFilter],
) -> str:
    """Stable hash of everything that shapes a result page."""
    payload = {
        "workboard": workboard.id,
        "version": workboard.version,
        "page": page,
        "sort": [sort_field, sort_direction.value],
        "filters": [f.to_dict() for f in filters],
    }
    raw = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(raw.encode()).hexdigest()[:16]


def execute_workboard(
    store: EntityStore,
    workboard: Workboard,
    *,
    page: int = 1,
    sort_field: str | None = None,
    sort_direction=None,
    extra_filters: list | None = None,
    now: datetime | None = None,
    sla_thresholds: dict[str, int] | None = None,
) -> QueryResult:
    """Execute a workboard and return one page of rows plus totals.

    Parameters
    ----------
    sort_field, sort_direction : override the workboard's stored sort
    extra_filters : unsaved filters from the client, ANDed with the saved ones
    now : evaluation time for formulas (defaults to the current UTC time)
    """
    et = workboard.entity_type
    cols = workboard.columns
    extras = [check_filter(et, f, cols) for f in (extra_filters or [])]
    filters = list(workboard.filters) + extras
    # Stored filters keep their authored values; coerce for evaluation only
    compiled = [validate_filter(et, f, cols) for f in filters]
    sort_key, direction = _resolve_sort(workboard, sort_field, sort_direction)
    now = now or datetime.now(timezone.utc)
    page = max(1, int(page or 1))
    per_page = config.PAGE_SIZE

    records = store.fetch_all(et, workboard.customer_id)
    fetched_at = datetime.now(timezone.utc).isoformat()

    formulas = formulas_needed(cols, filters, sort_key)
    rows = attach_formulas(records, formulas, now, sla_thresholds=sla_thresholds)
    rows = [r for r in rows if matches_all(r, compiled, et, cols)]

    if sort_key:
        rows = sort_rows(
            rows, sort_key, direction,
            entity_type=et, field_def=resolve_field(et, sort_key, cols),
        )

    total = len(rows)
    start = (page - 1) * per_page
    page_rows = rows[start:start + per_page]
    provenance = {"source": getattr(store, "source", type(store).__name__),
                  "fetched_at": fetched_at}
    for row in page_rows:
        row["_provenance"] = dict(provenance)

    log.debug(
        "Workboard %s: %d fetched, %d matched, page %d returned %d",
        workboard.id, len(records), total, page, len(page_rows),
    )
    return QueryResult(
        rows=page_rows,
        total=total,
        page=page,
        per_page=per_page,
        has_more=page * per_page < total,
        signature=query_signature(workboard, page, sort_key, direction, filters),
    )
