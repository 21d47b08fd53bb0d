"""SQLite database layer for usage records and quota counters."""

import sqlite3
from datetime import datetime
from pathlib import Path

from src.core.schemas import ModelUsage, UsageRecord

_USAGE_RECORDS_TABLE = """
CREATE TABLE IF NOT EXISTS usage_records (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id       TEXT    NOT NULL,
    operation        TEXT    NOT NULL,
    model            TEXT    NOT NULL,
    tokens_used      INTEGER NOT NULL DEFAULT 0,
    response_time_ms INTEGER NOT NULL DEFAULT 0,
    estimated_cost   REAL    NOT NULL DEFAULT 0.0,
    input_length     INTEGER NOT NULL DEFAULT 0,
    output_length    INTEGER NOT NULL DEFAULT 0,
    created_at       TEXT    NOT NULL
);
"""

_USAGE_RECORDS_INDEX = """
CREATE INDEX IF NOT EXISTS idx_usage_records_session
    ON usage_records (session_id, created_at);
"""

_QUOTA_COUNTERS_TABLE = """
CREATE TABLE IF NOT EXISTS quota_counters (
    session_id  TEXT    NOT NULL,
    window_kind TEXT    NOT NULL,
    period      TEXT    NOT NULL,
    tokens_used INTEGER NOT NULL DEFAULT 0,
    spent       REAL    NOT NULL DEFAULT 0.0,
    PRIMARY KEY (session_id, window_kind, period)
);
"""

_INCREMENT_COUNTER = """
INSERT INTO quota_counters (session_id, window_kind, period, tokens_used, spent)
VALUES (?, ?, ?, ?, ?)
ON CONFLICT(session_id, window_kind, period)
DO UPDATE SET
    tokens_used = tokens_used + excluded.tokens_used,
    spent = spent + excluded.spent
"""


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and tables, returning a connection.

    The connection may be shared across threads; callers serialize access.
    """
    path = Path(path)
    if str(path) != ":memory:":
        path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(_USAGE_RECORDS_TABLE)
    conn.execute(_USAGE_RECORDS_INDEX)
    conn.execute(_QUOTA_COUNTERS_TABLE)
    conn.commit()
    return conn


def record_usage(
    conn: sqlite3.Connection,
    record: UsageRecord,
    day: str,
    month: str,
) -> None:
    """Append a usage record and bump the day and month counters atomically.

    All three writes share one transaction; counters are incremented in SQL,
    never read-modify-written from Python.
    """
    with conn:
        conn.execute(
            """
            INSERT INTO usage_records
                (session_id, operation, model, tokens_used, response_time_ms,
                 estimated_cost, input_length, output_length, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.session_id,
                record.operation,
                record.model,
                record.tokens_used,
                record.response_time_ms,
                record.estimated_cost,
                record.input_length,
                record.output_length,
                record.timestamp.isoformat(),
            ),
        )
        conn.execute(
            _INCREMENT_COUNTER,
            (record.session_id, "day", day, record.tokens_used, record.estimated_cost),
        )
        conn.execute(
            _INCREMENT_COUNTER,
            (record.session_id, "month", month, record.tokens_used, record.estimated_cost),
        )


def get_usage(
    conn: sqlite3.Connection,
    session_id: str,
    day: str,
    month: str,
) -> tuple[int, float]:
    """Return (tokens used on ``day``, spend during ``month``) for a session."""
    day_row = conn.execute(
        "SELECT tokens_used FROM quota_counters WHERE session_id = ? AND window_kind = 'day' AND period = ?",
        (session_id, day),
    ).fetchone()
    month_row = conn.execute(
        "SELECT spent FROM quota_counters WHERE session_id = ? AND window_kind = 'month' AND period = ?",
        (session_id, month),
    ).fetchone()
    tokens = day_row["tokens_used"] if day_row is not None else 0
    spent = month_row["spent"] if month_row is not None else 0.0
    return (tokens, spent)


def get_total_usage(
    conn: sqlite3.Connection,
    day: str,
    month: str,
) -> tuple[int, float]:
    """Return (tokens on ``day``, spend during ``month``) across all sessions."""
    day_row = conn.execute(
        "SELECT COALESCE(SUM(tokens_used), 0) AS t FROM quota_counters WHERE window_kind = 'day' AND period = ?",
        (day,),
    ).fetchone()
    month_row = conn.execute(
        "SELECT COALESCE(SUM(spent), 0.0) AS s FROM quota_counters WHERE window_kind = 'month' AND period = ?",
        (month,),
    ).fetchone()
    return (int(day_row["t"]), float(month_row["s"]))


def get_model_breakdown(
    conn: sqlite3.Connection,
    since: datetime,
    session_id: str | None = None,
) -> list[ModelUsage]:
    """Aggregate tokens, cost and call count per model since a timestamp."""
    query = """
        SELECT model,
               SUM(tokens_used)    AS tokens,
               SUM(estimated_cost) AS cost,
               COUNT(*)            AS calls
        FROM usage_records
        WHERE created_at >= ?
    """
    params: list[object] = [since.isoformat()]
    if session_id is not None:
        query += " AND session_id = ?"
        params.append(session_id)
    query += " GROUP BY model ORDER BY cost DESC, model ASC"
    rows = conn.execute(query, params).fetchall()
    return [
        ModelUsage(
            model=row["model"],
            tokens=row["tokens"] or 0,
            cost=row["cost"] or 0.0,
            calls=row["calls"],
        )
        for row in rows
    ]


def get_usage_records(
    conn: sqlite3.Connection,
    session_id: str | None = None,
    limit: int = 50,
) -> list[UsageRecord]:
    """Return the most recent usage records, newest first."""
    if session_id is not None:
        rows = conn.execute(
            "SELECT * FROM usage_records WHERE session_id = ? ORDER BY id DESC LIMIT ?",
            (session_id, limit),
        ).fetchall()
    else:
        rows = conn.execute(
            "SELECT * FROM usage_records ORDER BY id DESC LIMIT ?",
            (limit,),
        ).fetchall()
    return [
        UsageRecord(
            session_id=row["session_id"],
            operation=row["operation"],
            model=row["model"],
            tokens_used=row["tokens_used"],
            response_time_ms=row["response_time_ms"],
            estimated_cost=row["estimated_cost"],
            input_length=row["input_length"],
            output_length=row["output_length"],
            timestamp=datetime.fromisoformat(row["created_at"]),
        )
        for row in rows
    ]
