"""
raiselab/core/db.py - Persistent SQLite Database Layer

SQLite at DATA_DIR/raiselab.db holds everything the dashboard reads:
profiles for the access gate, quotations and their line items for the PDF
renderer, company settings, and the terms-and-conditions library.

TABLES:
  profiles         - dashboard accounts with role (admin|sales|...)
  quotations       - one row per quotation sent to a customer
  quotation_items  - line items in display order, JSON add-ons/specs/features
  settings         - key/value company settings (company_name, ...)
  terms            - reusable terms-and-conditions clauses
"""

import os
import json
import sqlite3
import logging
import threading
from datetime import datetime
from contextlib import contextmanager

from werkzeug.security import generate_password_hash

from raiselab.core import paths

log = logging.getLogger("raiselab.db")

DB_PATH = paths.DB_PATH

_db_lock = threading.Lock()


# ── Connection factory ────────────────────────────────────────────────────────
@contextmanager
def get_db():
    """Thread-safe SQLite connection with WAL mode for multi-worker gunicorn."""
    with _db_lock:
        os.makedirs(os.path.dirname(DB_PATH), exist_ok=True)
        conn = sqlite3.connect(DB_PATH, timeout=30, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA foreign_keys=ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()


# ── Schema ────────────────────────────────────────────────────────────────────
SCHEMA = """
CREATE TABLE IF NOT EXISTS profiles (
    id              TEXT PRIMARY KEY,
    email           TEXT UNIQUE NOT NULL,
    password_hash   TEXT,
    full_name       TEXT,
    phone           TEXT,
    role            TEXT,           -- admin|sales|NULL
    created_at      TEXT NOT NULL,
    updated_at      TEXT
);

CREATE TABLE IF NOT EXISTS quotations (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    quotation_number  TEXT UNIQUE NOT NULL,
    customer_name     TEXT NOT NULL,
    customer_address  TEXT,
    created_at        TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS quotation_items (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    quotation_id    INTEGER NOT NULL REFERENCES quotations(id) ON DELETE CASCADE,
    position        INTEGER NOT NULL DEFAULT 0,
    name            TEXT NOT NULL,
    description     TEXT,
    price           REAL NOT NULL DEFAULT 0,
    image_url       TEXT,
    image_format    TEXT DEFAULT 'wide',   -- wide|tall
    features        TEXT,                  -- JSON array of strings, NULL = boilerplate
    specs           TEXT,                  -- JSON array of {key, value}
    selected_addons TEXT                   -- JSON array of {name, price}
);

CREATE INDEX IF NOT EXISTS idx_items_quotation ON quotation_items(quotation_id, position);

CREATE TABLE IF NOT EXISTS settings (
    key             TEXT PRIMARY KEY,
    value           TEXT,
    updated_at      TEXT
);

CREATE TABLE IF NOT EXISTS terms (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    position        INTEGER NOT NULL DEFAULT 0,
    title           TEXT NOT NULL,
    text            TEXT NOT NULL
);
"""


def init_db():
    """Create all tables if they don't exist. Safe to call multiple times."""
    with get_db() as conn:
        conn.executescript(SCHEMA)
    log.info("DB initialized at %s", DB_PATH)
    return True


def _row(r):
    return dict(r) if r is not None else None


def _dumps(value):
    if value is None:
        return None
    return json.dumps([_plain(v) for v in value])


def _plain(v):
    if hasattr(v, "__dataclass_fields__"):
        return {k: getattr(v, k) for k in v.__dataclass_fields__}
    return v


# ═══════════════════════════════════════════════════════════════════════════════
# Profiles - identity + role for the access gate
# ═══════════════════════════════════════════════════════════════════════════════

def upsert_profile(profile_id: str, email: str, password: str = None,
                   full_name: str = "", phone: str = "", role: str = None) -> dict:
    """Create or update a dashboard profile. Password is stored hashed."""
    now = datetime.now().isoformat()
    pw_hash = generate_password_hash(password) if password else None
    with get_db() as conn:
        conn.execute("""
            INSERT INTO profiles (id, email, password_hash, full_name, phone, role, created_at)
            VALUES (?,?,?,?,?,?,?)
            ON CONFLICT(id) DO UPDATE SET
                email=excluded.email,
                password_hash=COALESCE(excluded.password_hash, profiles.password_hash),
                full_name=excluded.full_name,
                phone=excluded.phone,
                role=excluded.role,
                updated_at=?
        """, (profile_id, email.strip().lower(), pw_hash, full_name, phone, role, now, now))
    return get_profile(profile_id)


def get_profile(profile_id: str):
    if not profile_id:
        return None
    with get_db() as conn:
        return _row(conn.execute(
            "SELECT * FROM profiles WHERE id = ?", (profile_id,)).fetchone())


def get_profile_by_email(email: str):
    if not email:
        return None
    with get_db() as conn:
        return _row(conn.execute(
            "SELECT * FROM profiles WHERE email = ?", (email.strip().lower(),)).fetchone())


def get_role(profile_id: str):
    """Role string for a profile, or None when the profile or role is missing."""
    profile = get_profile(profile_id)
    return profile.get("role") if profile else None


def seed_admin(email: str, password: str, full_name: str = "Administrator"):
    """Ensure an admin account exists for first login. No-op without credentials."""
    if not email or not password:
        return None
    existing = get_profile_by_email(email)
    if existing:
        return existing
    log.info("Seeding admin profile %s", email)
    return upsert_profile("admin-" + email.split("@")[0], email, password,
                          full_name=full_name, role="admin")


# ═══════════════════════════════════════════════════════════════════════════════
# Quotations + line items
# ═══════════════════════════════════════════════════════════════════════════════

def create_quotation(quotation_number: str, customer_name: str,
                     customer_address: str = "", created_at: str = None) -> int:
    """Insert a quotation header. Returns its id."""
    created_at = created_at or datetime.now().isoformat()
    with get_db() as conn:
        cur = conn.execute("""
            INSERT INTO quotations (quotation_number, customer_name, customer_address, created_at)
            VALUES (?,?,?,?)
        """, (quotation_number, customer_name, customer_address, created_at))
        qid = cur.lastrowid
    log.info("Quotation %s created (id=%d)", quotation_number, qid)
    return qid


def get_quotation(quotation_id: int):
    with get_db() as conn:
        return _row(conn.execute(
            "SELECT * FROM quotations WHERE id = ?", (quotation_id,)).fetchone())


def list_quotations(limit: int = 100) -> list:
    """Newest first, with item counts for the dashboard table."""
    with get_db() as conn:
        rows = conn.execute("""
            SELECT q.*, COUNT(i.id) AS items_count
            FROM quotations q LEFT JOIN quotation_items i ON i.quotation_id = q.id
            GROUP BY q.id
            ORDER BY q.created_at DESC, q.id DESC
            LIMIT ?
        """, (limit,)).fetchall()
    return [dict(r) for r in rows]


def add_quotation_item(quotation_id: int, name: str, price: float,
                       description: str = "", image_url: str = None,
                       image_format: str = "wide", features=None, specs=None,
                       selected_addons=None, position: int = None) -> int:
    """Append a line item. ``features=None`` keeps the boilerplate feature list."""
    with get_db() as conn:
        if position is None:
            position = conn.execute(
                "SELECT COALESCE(MAX(position), -1) + 1 FROM quotation_items WHERE quotation_id = ?",
                (quotation_id,)).fetchone()[0]
        cur = conn.execute("""
            INSERT INTO quotation_items (quotation_id, position, name, description, price,
                image_url, image_format, features, specs, selected_addons)
            VALUES (?,?,?,?,?,?,?,?,?,?)
        """, (quotation_id, position, name, description, price, image_url,
              image_format, _dumps(features), _dumps(specs), _dumps(selected_addons)))
        return cur.lastrowid


def get_quotation_items(quotation_id: int) -> list:
    """Line items in display order. JSON columns are left as text for LineItem.from_row."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM quotation_items WHERE quotation_id = ? ORDER BY position, id",
            (quotation_id,)).fetchall()
    return [dict(r) for r in rows]


# ═══════════════════════════════════════════════════════════════════════════════
# Settings
# ═══════════════════════════════════════════════════════════════════════════════

def get_setting(key: str, default=None):
    with get_db() as conn:
        row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
    if row is None:
        return default
    try:
        return json.loads(row["value"])
    except (TypeError, json.JSONDecodeError):
        return row["value"]


def set_setting(key: str, value):
    with get_db() as conn:
        conn.execute("""
            INSERT INTO settings (key, value, updated_at) VALUES (?,?,?)
            ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
        """, (key, json.dumps(value), datetime.now().isoformat()))


def get_company_settings() -> dict:
    return {"company_name": get_setting("company_name", "")}


# ═══════════════════════════════════════════════════════════════════════════════
# Terms library
# ═══════════════════════════════════════════════════════════════════════════════

def add_term(title: str, text: str, position: int = 0) -> int:
    with get_db() as conn:
        cur = conn.execute(
            "INSERT INTO terms (position, title, text) VALUES (?,?,?)",
            (position, title, text))
        return cur.lastrowid


def get_terms(ids=None) -> list:
    """All terms in library order, or exactly ``ids`` in the order given."""
    with get_db() as conn:
        if ids is None:
            rows = conn.execute("SELECT * FROM terms ORDER BY position, id").fetchall()
            return [dict(r) for r in rows]
        ids = [int(i) for i in ids]
        if not ids:
            return []
        marks = ",".join("?" * len(ids))
        rows = conn.execute(f"SELECT * FROM terms WHERE id IN ({marks})", ids).fetchall()
    by_id = {r["id"]: dict(r) for r in rows}
    return [by_id[i] for i in ids if i in by_id]
