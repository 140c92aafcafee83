"""SQLite storage for admission history, facility metadata and scores.

Stores past admission outcomes, the latest facility statistics and the
scores computed for each child in an in-process SQLite database.  The
database is created automatically on first use and lives at
``$SEAT_SCOUT_DATA_DIR/seat_scout.db`` (default: ``~/.seat-scout/seat_scout.db``).

``SqliteStore`` adapts the module functions to the provider protocols
consumed by ``ScoringEngine``.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import UTC, datetime
from typing import TypedDict

from pydantic import ValidationError

from seat_scout.errors import DataUnavailableError
from seat_scout.models.admission import (
    FacilityMetadata,
    HistoricalCase,
    ScoreHistoryEntry,
    ScoreResult,
    TargetClass,
)
from seat_scout.settings import settings

logger = logging.getLogger(__name__)

# Thread-local database connections (SQLite is not thread-safe by default)
_local = threading.local()

SCORE_HISTORY_LIMIT = 20


def _get_conn() -> sqlite3.Connection:
    """Return a thread-local SQLite connection, creating the DB if needed."""
    if _shared_test_conn is not None:
        return _shared_test_conn
    conn: sqlite3.Connection | None = getattr(_local, "conn", None)
    if conn is None:
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(settings.db_path), check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        _local.conn = conn
        _init_schema(conn)
    return conn


def _init_schema(conn: sqlite3.Connection) -> None:
    """Create the ``admission_cases`` and ``facility_metadata`` tables."""
    conn.execute("""
        CREATE TABLE IF NOT EXISTS admission_cases (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            facility_id TEXT NOT NULL,
            target_class TEXT NOT NULL,
            priority_type TEXT NOT NULL,
            waiting_months REAL NOT NULL,
            result TEXT NOT NULL,
            year INTEGER NOT NULL,
            recorded_at TEXT NOT NULL
        )
    """)
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_cases_facility_class
        ON admission_cases (facility_id, target_class, year)
    """)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS facility_metadata (
            facility_id TEXT PRIMARY KEY,
            payload TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS score_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            child_id TEXT NOT NULL,
            facility_id TEXT NOT NULL,
            grade TEXT NOT NULL,
            probability REAL NOT NULL,
            payload TEXT NOT NULL,
            calculated_at TEXT NOT NULL
        )
    """)
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_scores_child
        ON score_history (child_id, id)
    """)
    conn.commit()


# ---------------------------------------------------------------------------
# Public types
# ---------------------------------------------------------------------------


class CaseRow(TypedDict):
    facility_id: str
    target_class: str
    priority_type: str
    waiting_months: float
    result: str
    year: int


# ---------------------------------------------------------------------------
# Write API
# ---------------------------------------------------------------------------


def record_cases_batch(rows: list[CaseRow]) -> None:
    """Insert multiple admission outcomes in a single transaction."""
    conn = _get_conn()
    now = datetime.now(UTC).isoformat()
    conn.executemany(
        """
        INSERT INTO admission_cases
            (facility_id, target_class, priority_type, waiting_months, result,
             year, recorded_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        [
            (
                r["facility_id"],
                r["target_class"],
                r["priority_type"],
                r["waiting_months"],
                r["result"],
                r["year"],
                now,
            )
            for r in rows
        ],
    )
    conn.commit()


def save_facility(metadata: FacilityMetadata) -> None:
    """Insert or replace the metadata for a facility."""
    conn = _get_conn()
    conn.execute(
        """
        INSERT INTO facility_metadata (facility_id, payload, updated_at)
        VALUES (?, ?, ?)
        ON CONFLICT(facility_id) DO UPDATE SET
            payload = excluded.payload,
            updated_at = excluded.updated_at
        """,
        (metadata.facilityId, metadata.model_dump_json(), datetime.now(UTC).isoformat()),
    )
    conn.commit()


def purge_old_cases(*, keep_years: int = 10) -> int:
    """Delete cases older than *keep_years* years.  Returns count deleted."""
    conn = _get_conn()
    cutoff_year = datetime.now(UTC).year - keep_years
    cursor = conn.execute("DELETE FROM admission_cases WHERE year < ?", (cutoff_year,))
    conn.commit()
    return cursor.rowcount


def record_score(child_id: str, result: ScoreResult) -> None:
    """Append a computed score to the child's history."""
    conn = _get_conn()
    conn.execute(
        """
        INSERT INTO score_history
            (child_id, facility_id, grade, probability, payload, calculated_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            child_id,
            result.facilityId,
            result.grade,
            result.probability,
            result.model_dump_json(),
            datetime.now(UTC).isoformat(),
        ),
    )
    conn.commit()


# ---------------------------------------------------------------------------
# Read API
# ---------------------------------------------------------------------------


def get_facility(facility_id: str) -> FacilityMetadata | None:
    """Return stored metadata for *facility_id*, or ``None`` if unknown."""
    conn = _get_conn()
    row = conn.execute(
        "SELECT payload FROM facility_metadata WHERE facility_id = ?", (facility_id,)
    ).fetchone()
    if row is None:
        return None
    try:
        return FacilityMetadata.model_validate_json(row["payload"])
    except ValidationError as exc:
        raise DataUnavailableError(f"Stored metadata for '{facility_id}' is corrupt") from exc


def get_cases(facility_id: str, target_class: TargetClass) -> list[HistoricalCase]:
    """Return cases for the facility, its comparable group and the class.

    Rows that no longer validate (e.g. a retired priority type) are
    skipped with a warning.
    """
    facility_ids = [facility_id]
    metadata = get_facility(facility_id)
    if metadata is not None:
        facility_ids.extend(f for f in metadata.comparableFacilityIds if f != facility_id)

    conn = _get_conn()
    placeholders = ", ".join("?" for _ in facility_ids)
    cursor = conn.execute(
        f"""
        SELECT facility_id, target_class, priority_type, waiting_months, result, year
        FROM admission_cases
        WHERE facility_id IN ({placeholders}) AND target_class = ?
        ORDER BY year DESC, id ASC
        """,  # noqa: S608
        (*facility_ids, target_class.value),
    )
    cases: list[HistoricalCase] = []
    for r in cursor.fetchall():
        try:
            cases.append(
                HistoricalCase(
                    facilityId=r["facility_id"],
                    targetClass=r["target_class"],
                    priorityType=r["priority_type"],
                    waitingMonths=r["waiting_months"],
                    result=r["result"],
                    year=r["year"],
                )
            )
        except ValidationError:
            logger.warning("Skipping invalid admission case row for %s", r["facility_id"])
    return cases


def get_case_count(facility_id: str) -> int:
    """Return the number of stored cases for a facility (all classes)."""
    conn = _get_conn()
    row = conn.execute(
        "SELECT COUNT(*) FROM admission_cases WHERE facility_id = ?", (facility_id,)
    ).fetchone()
    return int(row[0]) if row else 0


def get_score_history(
    child_id: str, *, limit: int = SCORE_HISTORY_LIMIT
) -> list[ScoreHistoryEntry]:
    """Return the child's latest computed scores, newest first."""
    conn = _get_conn()
    cursor = conn.execute(
        """
        SELECT child_id, payload, calculated_at
        FROM score_history
        WHERE child_id = ?
        ORDER BY id DESC
        LIMIT ?
        """,
        (child_id, limit),
    )
    entries: list[ScoreHistoryEntry] = []
    for r in cursor.fetchall():
        try:
            entries.append(
                ScoreHistoryEntry(
                    childId=r["child_id"],
                    calculatedAt=r["calculated_at"],
                    result=ScoreResult.model_validate_json(r["payload"]),
                )
            )
        except ValidationError:
            logger.warning("Skipping unreadable score history row for %s", child_id)
    return entries


class SqliteStore:
    """Provider adapter over this module for ``ScoringEngine``."""

    def get(self, facility_id: str) -> FacilityMetadata | None:
        return get_facility(facility_id)

    def get_cases(self, facility_id: str, target_class: TargetClass) -> list[HistoricalCase]:
        return get_cases(facility_id, target_class)


# ---------------------------------------------------------------------------
# Testing helper
# ---------------------------------------------------------------------------

_shared_test_conn: sqlite3.Connection | None = None


def use_memory_db() -> None:
    """Switch to a shared in-memory SQLite DB for testing."""
    global _shared_test_conn  # noqa: PLW0603
    conn = sqlite3.connect(":memory:", check_same_thread=False)
    conn.row_factory = sqlite3.Row
    _init_schema(conn)
    _shared_test_conn = conn


def reset_test_db() -> None:
    """Close the in-memory DB and reset state."""
    global _shared_test_conn  # noqa: PLW0603
    if _shared_test_conn is not None:
        _shared_test_conn.close()
    _shared_test_conn = None
