"""Lint run history: SQLite-backed, one row per site-wide lint run.

Lets the dashboard show whether a site is getting cleaner over time:
    started_at, site, files, errors, warnings, duration_ms
"""

import sqlite3
from pathlib import Path

_DB_PATH = Path.home() / ".config" / "blog-lint" / "history.db"

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS lint_runs (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    started_at   TEXT    NOT NULL,
    site         TEXT    NOT NULL,
    files        INTEGER NOT NULL DEFAULT 0,
    errors       INTEGER NOT NULL DEFAULT 0,
    warnings     INTEGER NOT NULL DEFAULT 0,
    duration_ms  INTEGER NOT NULL DEFAULT 0
)
"""


def _conn() -> sqlite3.Connection:
    """Open (and if needed initialise) the history database."""
    _DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    con = sqlite3.connect(str(_DB_PATH))
    con.row_factory = sqlite3.Row
    con.execute(_CREATE_TABLE)
    con.commit()
    return con


def record_run(report: dict) -> int:
    """Store the totals of a lint_site() report. Returns the new row id."""
    con = _conn()
    try:
        with con:
            cur = con.execute(
                "INSERT INTO lint_runs (started_at, site, files, errors, warnings, duration_ms) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    report["started_at"],
                    report["site"],
                    report["files"],
                    report["errors"],
                    report["warnings"],
                    report.get("duration_ms", 0),
                ),
            )
        return cur.lastrowid
    finally:
        con.close()


def recent_runs(limit: int = 20, *, site: str | None = None) -> list[dict]:
    """Most recent runs first, optionally for one site only."""
    con = _conn()
    try:
        if site:
            rows = con.execute(
                "SELECT * FROM lint_runs WHERE site = ? ORDER BY id DESC LIMIT ?",
                (site, limit),
            ).fetchall()
        else:
            rows = con.execute(
                "SELECT * FROM lint_runs ORDER BY id DESC LIMIT ?", (limit,)
            ).fetchall()
    finally:
        con.close()
    return [dict(row) for row in rows]


def last_run(*, site: str | None = None) -> dict | None:
    runs = recent_runs(1, site=site)
    return runs[0] if runs else None
