"""User lookups for request identity.

Authentication itself happens upstream; this module only resolves the
user a request claims to be.
"""

from __future__ import annotations

from .database import get_connection


def get_user(customer_id: str, user_id: str) -> dict | None:
    """Return an active user of ``customer_id``, or None."""
    with get_connection() as conn:
        row = conn.execute(
            "SELECT u.* FROM users u JOIN customers c ON c.id = u.customer_id "
            "WHERE u.id = ? AND u.customer_id = ? AND u.is_active = 1 AND c.is_active = 1",
            (user_id, customer_id),
        ).fetchone()
    return dict(row) if row else None


def get_current_user() -> dict | None:
    """First active user, for bypass mode (auth disabled)."""
    with get_connection() as conn:
        row = conn.execute(
            "SELECT * FROM users WHERE is_active = 1 ORDER BY created_at, id LIMIT 1"
        ).fetchone()
    return dict(row) if row else None
