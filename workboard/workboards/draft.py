"""Uncommitted column/filter edits made in the workboard configurator."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field

from ..errors import InvalidColumn, InvalidWorkboard
from ..models import SortDirection, Workboard, WorkboardColumn, WorkboardFilter
from . import crud
from .filters import check_filter
from .registry import AvailableColumn, available_columns, make_column
from .sorting import toggle_sort


@dataclass
class WorkboardDraft:
    """Working copy of a workboard's columns, filters and sort.

    Nothing is persisted until ``commit``; ``discard`` returns to the
    last persisted state.
    """

    workboard: Workboard
    columns: list[WorkboardColumn] = field(default_factory=list)
    filters: list[WorkboardFilter] = field(default_factory=list)
    sort_column: str | None = None
    sort_direction: SortDirection = SortDirection.ASC

    @classmethod
    def from_workboard(cls, workboard: Workboard) -> WorkboardDraft:
        return cls(
            workboard=workboard,
            columns=list(workboard.columns),
            filters=list(workboard.filters),
            sort_column=workboard.sort_column,
            sort_direction=workboard.sort_direction,
        )

    # -- columns ----------------------------------------------------------

    def available_columns(self) -> list[AvailableColumn]:
        return available_columns(self.workboard.entity_type, self.columns)

    def add_column(self, field_key: str, *, width: int = 150) -> WorkboardColumn:
        if any(c.field == field_key for c in self.columns):
            raise InvalidColumn(f"Column '{field_key}' is already in the workboard")
        if len(self.columns) >= crud.MAX_COLUMNS:
            raise InvalidWorkboard(f"A workboard may have at most {crud.MAX_COLUMNS} columns")
        col = make_column(self.workboard.entity_type, field_key, width=width)
        self.columns.append(col)
        return col

    def remove_column(self, index: int) -> None:
        if 0 <= index < len(self.columns):
            del self.columns[index]

    def move_column(self, index: int, direction: str) -> None:
        """Swap with the neighbour above ("up") or below ("down"); no-op at the edges."""
        target = index - 1 if direction == "up" else index + 1
        if not (0 <= index < len(self.columns)) or not (0 <= target < len(self.columns)):
            return
        self.columns[index], self.columns[target] = self.columns[target], self.columns[index]

    # -- filters ----------------------------------------------------------

    def add_filter(self, raw) -> WorkboardFilter:
        if len(self.filters) >= crud.MAX_FILTERS:
            raise InvalidWorkboard(f"A workboard may have at most {crud.MAX_FILTERS} filters")
        filt = check_filter(self.workboard.entity_type, raw, self.columns)
        self.filters.append(filt)
        return filt

    def remove_filter(self, index: int) -> None:
        if 0 <= index < len(self.filters):
            del self.filters[index]

    def clear_filters(self) -> None:
        self.filters = []

    # -- sort -------------------------------------------------------------

    def toggle_sort(self, field_key: str) -> None:
        self.sort_column, self.sort_direction = toggle_sort(
            self.sort_column, self.sort_direction, field_key,
        )

    # -- lifecycle --------------------------------------------------------

    @property
    def has_changes(self) -> bool:
        wb = self.workboard
        return (
            self.columns != wb.columns
            or self.filters != wb.filters
            or self.sort_column != wb.sort_column
            or self.sort_direction != wb.sort_direction
        )

    def discard(self) -> None:
        self.columns = list(self.workboard.columns)
        self.filters = list(self.workboard.filters)
        self.sort_column = self.workboard.sort_column
        self.sort_direction = self.workboard.sort_direction

    def commit(self, conn: sqlite3.Connection, *, user_id: str | None = None) -> Workboard:
        """Save columns and filters (and a changed sort) and rebase the draft."""
        wb = self.workboard
        saved = crud.save_workboard(
            conn, wb.id, wb.customer_id, self.columns, self.filters,
            user_id=user_id, expected_version=wb.version,
        )
        if (self.sort_column, self.sort_direction) != (wb.sort_column, wb.sort_direction):
            saved = crud.update_workboard_details(
                conn, wb.id, wb.customer_id, user_id=user_id,
                sort_column=self.sort_column, sort_direction=self.sort_direction,
            )
        self.workboard = saved
        self.discard()
        return saved
