"""Error kinds raised by the workboard engine.

Every error is local and recoverable: the API layer maps them onto HTTP
responses through ``code`` and ``status_code``.
"""

from __future__ import annotations


class WorkboardError(Exception):
    """Base class for workboard engine errors."""

    code = "workboard_error"
    status_code = 400


class UnknownEntityType(WorkboardError):
    code = "unknown_entity_type"

    def __init__(self, entity_type: str) -> None:
        self.entity_type = entity_type
        super().__init__(f"Unknown entity type: {entity_type}")


class InvalidColumn(WorkboardError):
    code = "invalid_column"


class InvalidFilterField(WorkboardError):
    code = "invalid_filter_field"

    def __init__(self, entity_type: str, field: str) -> None:
        self.entity_type = entity_type
        self.field = field
        super().__init__(f"Field '{field}' is not filterable on {entity_type}")


class InvalidFilterOperator(WorkboardError):
    """Raised when an operator is not legal for the field's kind."""

    code = "invalid_filter_operator"

    def __init__(self, field: str, operator: str, allowed: list[str]) -> None:
        self.field = field
        self.operator = operator
        self.allowed = list(allowed)
        super().__init__(
            f"Operator '{operator}' is not valid for field '{field}'. "
            f"Must be one of: {', '.join(self.allowed)}"
        )


class InvalidFilterValue(WorkboardError):
    code = "invalid_filter_value"


class DefaultViewImmutable(WorkboardError):
    code = "default_view_immutable"
    status_code = 403

    def __init__(self, workboard_id: str) -> None:
        self.workboard_id = workboard_id
        super().__init__("Cannot modify a default workboard")


class WorkboardNotFound(WorkboardError):
    code = "workboard_not_found"
    status_code = 404

    def __init__(self, workboard_id: str) -> None:
        self.workboard_id = workboard_id
        super().__init__("Workboard not found")


class WorkboardConflict(WorkboardError):
    code = "workboard_conflict"
    status_code = 409

    def __init__(self, workboard_id: str, expected: int, actual: int) -> None:
        self.workboard_id = workboard_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Workboard was modified (expected version {expected}, found {actual})"
        )


class FormulaFieldReadOnly(WorkboardError):
    code = "formula_field_read_only"

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Field '{field}' is a formula and cannot be edited")


class FieldNotEditable(WorkboardError):
    code = "field_not_editable"

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Field '{field}' is not editable")


class InvalidCellValue(WorkboardError):
    code = "invalid_cell_value"


class RecordNotFound(WorkboardError):
    code = "record_not_found"
    status_code = 404

    def __init__(self, entity_type: str, record_id: str) -> None:
        self.entity_type = entity_type
        self.record_id = record_id
        super().__init__(f"Record not found: {entity_type}/{record_id}")


class StoreUnavailable(WorkboardError):
    """The entity store failed to fetch or update records."""

    code = "store_unavailable"
    status_code = 503


class InvalidWorkboard(WorkboardError):
    """Name, sort or size limits of a workboard definition are invalid."""

    code = "invalid_workboard"


class NotWorkboardOwner(WorkboardError):
    code = "not_workboard_owner"
    status_code = 403

    def __init__(self, workboard_id: str) -> None:
        self.workboard_id = workboard_id
        super().__init__("Not authorized to modify this workboard")
