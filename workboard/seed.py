"""Demo data for local use: one tenant with companies, contacts, deals and activities."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timedelta, timezone

from .workboards.crud import ensure_default_workboards

log = logging.getLogger(__name__)

_COMPANIES = [
    # key, name, domain, industry, employees, annual revenue
    ("acme", "Acme Corporation", "acme.com", "Technology", 500, 50_000_000),
    ("techstart", "TechStart Inc", "techstart.io", "Technology", 50, 5_000_000),
    ("global", "Global Solutions", "globalsolutions.com", "Consulting", 200, 25_000_000),
    ("innovate", "Innovate Labs", "innovatelabs.co", "Technology", 75, 8_000_000),
    ("enterprise", "Enterprise Systems", "enterprise-sys.com", "Software", 1000, 100_000_000),
]

_CONTACTS = [
    # key, name, email, phone, title, company key, status
    ("john", "John Smith", "john.smith@acme.com", "+1-555-0101", "VP of Sales", "acme", "active"),
    ("sarah", "Sarah Johnson", "sarah@techstart.io", "+1-555-0102", "CEO", "techstart", "active"),
    ("mike", "Mike Chen", "mchen@globalsolutions.com", "+1-555-0103",
     "Director of Operations", "global", "active"),
    ("emily", "Emily Davis", "emily.d@innovatelabs.co", "+1-555-0104", "CTO", "innovate", "lead"),
    ("robert", "Robert Wilson", "rwilson@enterprise-sys.com", "+1-555-0105",
     "VP of Engineering", "enterprise", "active"),
    ("lisa", "Lisa Anderson", "lisa@acme.com", "+1-555-0106", "Sales Manager", "acme", "active"),
    ("david", "David Brown", "david@techstart.io", "+1-555-0107", "Product Manager", "techstart", "lead"),
]

_DEALS = [
    # key, name, value, stage, contact, company, close in days, days in stage, SPIN notes
    ("acme_license", "Acme Enterprise License", 150_000, "negotiation", "john", "acme", 30, 5, (
        "50-person sales team currently using spreadsheets. 2 dedicated admins managing data.",
        "Reps waste 5+ hours per week on manual data entry. No visibility into pipeline.",
        "Lost $200k in potential revenue last quarter due to dropped follow-ups.",
        "Automation could free up 250 hours/month for actual selling.",
    )),
    ("techstart_growth", "TechStart Growth Package", 45_000, "proposal", "sarah", "techstart", 14, 20, (
        "15-person sales team, growing fast. Using HubSpot free tier.",
        "Outgrowing current CRM limits. Need better reporting.",
        None,
        None,
    )),
    ("global_pilot", "Global Solutions Pilot", 25_000, "qualified", "mike", "global", 45, 3, (
        "Consulting firm with 30 client-facing staff.", None, None, None,
    )),
    ("innovate_starter", "Innovate Labs Starter", 12_000, "lead", "emily", "innovate", 60, 1, (
        None, None, None, None,
    )),
    ("enterprise_expansion", "Enterprise Systems Expansion", 500_000, "proposal", "robert",
     "enterprise", 21, 7, (
        "Already using our basic tier. 200+ users across 5 departments.",
        "Data silos between sales and customer success teams.",
        "Customer churn increased 15% due to poor handoffs.",
        "Unified view could reduce churn by 10%, worth $2M annually.",
    )),
    ("acme_support", "Acme Support Add-on", 30_000, "closed_won", "lisa", "acme", -5, 10, (
        "Existing customer wanting to expand.", "Support team needs CRM access.", None, None,
    )),
]

_ACTIVITIES = [
    # entity type, key, kind, subject, days ago
    ("deals", "acme_license", "call", "Pricing walkthrough with John", 2),
    ("deals", "enterprise_expansion", "meeting", "Security review", 9),
    ("deals", "global_pilot", "email", "Sent pilot scope", 21),
    ("contacts", "sarah", "email", "Follow-up on proposal", 4),
    ("companies", "acme", "note", "Renewal coming up in Q3", 1),
]


def seed_demo(
    conn: sqlite3.Connection,
    customer_id: str,
    *,
    now: datetime | None = None,
) -> dict:
    """Insert a demo tenant. Returns counts per table; re-running is a no-op."""
    now = now or datetime.now(timezone.utc)
    ts = now.isoformat()

    def _id(kind: str, key: str) -> str:
        return f"{customer_id}-{kind}-{key}"

    def _ago(days: int) -> str:
        return (now - timedelta(days=days)).isoformat()

    existing = conn.execute("SELECT 1 FROM customers WHERE id = ?", (customer_id,)).fetchone()
    if existing:
        log.info("Customer %s already seeded", customer_id)
        return {"companies": 0, "contacts": 0, "deals": 0, "activities": 0}

    user_id = _id("user", "demo")
    conn.execute(
        "INSERT INTO customers (id, name, slug, is_active, created_at, updated_at) "
        "VALUES (?, ?, ?, 1, ?, ?)",
        (customer_id, "Demo Org", customer_id, ts, ts),
    )
    conn.execute(
        "INSERT INTO users (id, customer_id, email, name, role, is_active, created_at, updated_at) "
        "VALUES (?, ?, ?, 'Demo User', 'admin', 1, ?, ?)",
        (user_id, customer_id, f"demo@{customer_id}.example", ts, ts),
    )

    for key, name, domain, industry, employees, revenue in _COMPANIES:
        conn.execute(
            "INSERT INTO companies (id, customer_id, name, domain, industry, employee_count, "
            "annual_revenue, owner_id, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (_id("company", key), customer_id, name, domain, industry, employees,
             revenue, user_id, ts, ts),
        )

    for key, name, email, phone, title, company, status in _CONTACTS:
        conn.execute(
            "INSERT INTO contacts (id, customer_id, name, email, phone, title, company_id, "
            "status, source, owner_id, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, 'demo', ?, ?, ?)",
            (_id("contact", key), customer_id, name, email, phone, title,
             _id("company", company), status, user_id, ts, ts),
        )

    for key, name, value, stage, contact, company, close_in, in_stage, spin in _DEALS:
        conn.execute(
            "INSERT INTO deals (id, customer_id, name, value, stage, contact_id, company_id, "
            "owner_id, close_date, spin_situation, spin_problem, spin_implication, "
            "spin_need_payoff, stage_entered_at, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (_id("deal", key), customer_id, name, value, stage,
             _id("contact", contact), _id("company", company), user_id,
             (now + timedelta(days=close_in)).date().isoformat(), *spin,
             _ago(in_stage), _ago(in_stage), ts),
        )

    for n, (entity_type, key, kind, subject, days_ago) in enumerate(_ACTIVITIES):
        prefix = {"deals": "deal", "contacts": "contact", "companies": "company"}[entity_type]
        conn.execute(
            "INSERT INTO activities (id, customer_id, entity_type, entity_id, kind, subject, "
            "occurred_at, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (_id("activity", str(n)), customer_id, entity_type, _id(prefix, key),
             kind, subject, _ago(days_ago), ts),
        )

    ensure_default_workboards(conn, customer_id)
    log.info("Seeded demo data for %s", customer_id)
    return {
        "companies": len(_COMPANIES),
        "contacts": len(_CONTACTS),
        "deals": len(_DEALS),
        "activities": len(_ACTIVITIES),
    }
