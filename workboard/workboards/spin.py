"""SPIN selling discovery score.

Each of the four SPIN note fields (Situation, Problem, Implication,
Need-Payoff) contributes up to 25 points by trimmed length:

- empty: 0
- 1-49 chars: 5 (started)
- 50-149 chars: 15 (partial)
- 150+ chars: 25 (complete)
"""

from __future__ import annotations

SPIN_FIELDS = ("spin_situation", "spin_problem", "spin_implication", "spin_need_payoff")

_COMPLETE_LENGTH = 150


def score_field(value: str | None) -> int:
    length = len(value.strip()) if value else 0
    if length == 0:
        return 0
    if length < 50:
        return 5
    if length < _COMPLETE_LENGTH:
        return 15
    return 25


def calculate_spin_score(record: dict) -> int:
    """0-100 completeness score from a deal's SPIN note fields."""
    return sum(score_field(record.get(f)) for f in SPIN_FIELDS)


def spin_score_label(score: int | None) -> str:
    if score is None:
        return "Needs Work"
    if score >= 75:
        return "Complete"
    if score >= 50:
        return "Good"
    if score >= 25:
        return "Partial"
    return "Needs Work"
