"""Starter workboard templates offered when creating a new workboard."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..models import EntityType

_OPEN = {"field": "stage", "operator": "not_in", "value": ["closed_won", "closed_lost"]}


def _raw(field_key: str, label: str, width: int, fmt: str | None = None) -> dict:
    col = {"id": f"col_{field_key}", "field": field_key, "label": label,
           "type": "raw", "width": width}
    if fmt:
        col["format"] = fmt
    return col


def _formula(formula: str, label: str, width: int) -> dict:
    return {"id": f"col_{formula}", "field": formula, "label": label,
            "type": "formula", "formula": formula, "width": width}


_NAME = _raw("name", "Name", 200)
_COMPANY = _raw("company_name", "Company", 150)
_VALUE = _raw("value", "Value", 120, "currency")
_STAGE = _raw("stage", "Stage", 130)
_OWNER = _raw("owner_name", "Owner", 130)
_CLOSE = _raw("close_date", "Close Date", 120, "date")
_DAYS = _formula("days_in_stage", "Days in Stage", 110)


@dataclass(frozen=True)
class WorkboardTemplate:
    id: str
    name: str
    description: str
    entity_type: EntityType
    columns: list[dict] = field(default_factory=list)
    filters: list[dict] = field(default_factory=list)
    sort_column: str | None = None
    sort_direction: str = "asc"
    requires_rep: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "entity_type": self.entity_type.value,
            "columns": self.columns,
            "filters": self.filters,
            "sort_column": self.sort_column,
            "sort_direction": self.sort_direction,
            "requires_rep": self.requires_rep,
        }


TEMPLATES: dict[str, WorkboardTemplate] = {t.id: t for t in [
    WorkboardTemplate(
        id="pipeline_by_rep",
        name="Pipeline by Rep",
        description="All open deals for a specific rep",
        entity_type=EntityType.DEALS,
        columns=[_NAME, _COMPANY, _VALUE, _STAGE,
                 _raw("probability", "Probability", 100, "number"), _CLOSE],
        filters=[_OPEN],
        sort_column="close_date",
        requires_rep=True,
    ),
    WorkboardTemplate(
        id="all_open_pipeline",
        name="All Open Pipeline",
        description="Full pipeline overview across all reps",
        entity_type=EntityType.DEALS,
        columns=[_NAME, _COMPANY, _VALUE, _STAGE, _OWNER, _CLOSE, _DAYS],
        filters=[_OPEN],
        sort_column="value",
        sort_direction="desc",
    ),
    WorkboardTemplate(
        id="deals_at_risk",
        name="Deals at Risk",
        description="Stale or low-probability open deals",
        entity_type=EntityType.DEALS,
        columns=[_NAME, _COMPANY, _VALUE, _STAGE, _OWNER, _DAYS,
                 _formula("last_activity_days", "Days Since Activity", 130)],
        filters=[_OPEN, {"field": "last_activity_days", "operator": "gte", "value": 7}],
        sort_column="last_activity_days",
        sort_direction="desc",
    ),
    WorkboardTemplate(
        id="win_loss_report",
        name="Win/Loss Report",
        description="Closed deals for analysis",
        entity_type=EntityType.DEALS,
        columns=[_NAME, _COMPANY, _VALUE, _STAGE, _OWNER, _CLOSE, _DAYS],
        filters=[{"field": "stage", "operator": "in", "value": ["closed_won", "closed_lost"]}],
        sort_column="close_date",
        sort_direction="desc",
    ),
    WorkboardTemplate(
        id="spin_gaps",
        name="SPIN Gaps",
        description="Deals with incomplete discovery",
        entity_type=EntityType.DEALS,
        columns=[_NAME, _COMPANY, _VALUE, _STAGE, _OWNER,
                 _formula("spin_score", "SPIN Score", 110)],
        filters=[_OPEN, {"field": "spin_score", "operator": "lt", "value": 75}],
        sort_column="spin_score",
    ),
    WorkboardTemplate(
        id="discovery_tracker",
        name="Discovery Tracker",
        description="Deals with incomplete SPIN data, sorted by value",
        entity_type=EntityType.DEALS,
        columns=[_NAME, _COMPANY, _VALUE, _STAGE,
                 _formula("spin_score", "SPIN Score", 100),
                 _raw("spin_situation", "Situation", 150),
                 _raw("spin_problem", "Problem", 150),
                 _raw("spin_implication", "Implication", 150),
                 _raw("spin_need_payoff", "Need-Payoff", 150)],
        filters=[{"field": "spin_score", "operator": "lt", "value": 100}, _OPEN],
        sort_column="value",
        sort_direction="desc",
    ),
    WorkboardTemplate(
        id="stale_deals",
        name="Stale Deals",
        description="Deals with no activity in the last 14 days",
        entity_type=EntityType.DEALS,
        columns=[_NAME, _COMPANY, _VALUE, _STAGE,
                 _formula("last_activity_days", "Days Since Activity", 140),
                 _OWNER, _raw("contact_name", "Contact", 120)],
        filters=[{"field": "last_activity_days", "operator": "gte", "value": 14}, _OPEN],
        sort_column="last_activity_days",
        sort_direction="desc",
    ),
    WorkboardTemplate(
        id="contacts_by_company",
        name="Contacts by Company",
        description="All contacts grouped by company",
        entity_type=EntityType.CONTACTS,
        columns=[_NAME, _raw("email", "Email", 200), _raw("phone", "Phone", 140),
                 _COMPANY, _raw("status", "Status", 100), _OWNER],
        sort_column="company_name",
    ),
    WorkboardTemplate(
        id="blank_report",
        name="Blank Report",
        description="Start from scratch with a custom report",
        entity_type=EntityType.DEALS,
    ),
]}


def list_templates() -> list[WorkboardTemplate]:
    return list(TEMPLATES.values())


def get_template(template_id: str) -> WorkboardTemplate | None:
    return TEMPLATES.get(template_id)
