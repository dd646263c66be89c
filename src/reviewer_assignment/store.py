from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator

import psycopg2
from psycopg2.extras import Json

from .allocator import AssignmentRun, plan_assignments
from .ledger import AssignmentLedger
from .pool import ReviewerPool

logger = logging.getLogger(__name__)

SCHEMA = "reviewer_assignment"


def get_database_url() -> str:
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        raise RuntimeError("DATABASE_URL is not set. Provide the dashboard database URL.")
    return database_url


@contextmanager
def db_cursor() -> Iterator:
    """Yield a cursor inside one transaction; commit on success, roll back on error."""
    conn = psycopg2.connect(get_database_url(), application_name="reviewer-assignment")
    try:
        with conn.cursor() as cursor:
            yield cursor
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def load_sql(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def lock_dataset(cursor, dataset_id: str) -> None:
    """Serialize load/run/persist for one dataset until the transaction ends."""
    cursor.execute("SELECT pg_advisory_xact_lock(hashtext(%s));", (dataset_id,))


def load_pool(cursor, dataset_id: str) -> ReviewerPool:
    cursor.execute(
        f"""
        SELECT reviewer_pool, reviewer_count, meeting_dates
          FROM {SCHEMA}.assignment_config
         WHERE dataset_id = %s;
        """,
        (dataset_id,),
    )
    row = cursor.fetchone()
    if row is None:
        return ReviewerPool()
    return ReviewerPool(
        reviewer_pool=tuple(row[0] or []),
        reviewer_count=row[1],
        meeting_dates=tuple(row[2] or []),
    )


def save_pool(cursor, dataset_id: str, pool: ReviewerPool) -> None:
    cursor.execute(
        f"""
        INSERT INTO {SCHEMA}.assignment_config
            (dataset_id, reviewer_pool, reviewer_count, meeting_dates, updated_at)
        VALUES (%s, %s, %s, %s::date[], NOW())
        ON CONFLICT (dataset_id) DO UPDATE
           SET reviewer_pool = EXCLUDED.reviewer_pool,
               reviewer_count = EXCLUDED.reviewer_count,
               meeting_dates = EXCLUDED.meeting_dates,
               updated_at = NOW();
        """,
        (dataset_id, list(pool.reviewer_pool), pool.reviewer_count, list(pool.meeting_dates)),
    )


def load_ledger(cursor, dataset_id: str, reviewer_count: int) -> AssignmentLedger:
    cursor.execute(
        f"SELECT payload FROM {SCHEMA}.assignment_ledgers WHERE dataset_id = %s;",
        (dataset_id,),
    )
    row = cursor.fetchone()
    return AssignmentLedger.from_payload(
        row[0] if row else None,
        dataset_id=dataset_id,
        reviewer_count=reviewer_count,
    )


def save_ledger(cursor, ledger: AssignmentLedger) -> None:
    if not ledger.dataset_id:
        raise ValueError("ledger has no dataset_id; cannot persist")
    cursor.execute(
        f"""
        INSERT INTO {SCHEMA}.assignment_ledgers (dataset_id, payload, updated_at)
        VALUES (%s, %s, NOW())
        ON CONFLICT (dataset_id) DO UPDATE
           SET payload = EXCLUDED.payload,
               updated_at = NOW();
        """,
        (ledger.dataset_id, Json(ledger.to_payload())),
    )
    logger.info(
        "saved ledger for %s: %d assigned, %d overflow",
        ledger.dataset_id,
        len(ledger.assignments),
        len(ledger.overflow),
    )


def clear_ledger(cursor, dataset_id: str) -> None:
    lock_dataset(cursor, dataset_id)
    save_ledger(cursor, AssignmentLedger(dataset_id=dataset_id))


def load_directory(cursor) -> dict[str, str | None]:
    cursor.execute(f"SELECT name, email FROM {SCHEMA}.reviewer_directory ORDER BY name;")
    return {row[0]: row[1] for row in cursor.fetchall()}


def save_directory_entry(cursor, name: str, email: str | None) -> None:
    cursor.execute(
        f"""
        INSERT INTO {SCHEMA}.reviewer_directory (name, email)
        VALUES (%s, %s)
        ON CONFLICT (name) DO UPDATE SET email = EXCLUDED.email;
        """,
        (name, email or None),
    )


def save_directory(cursor, entries: dict[str, str | None]) -> int:
    for name, email in entries.items():
        save_directory_entry(cursor, name, email)
    return len(entries)


def remove_directory_entry(cursor, name: str) -> bool:
    cursor.execute(
        f"DELETE FROM {SCHEMA}.reviewer_directory WHERE name = %s;",
        (name,),
    )
    return cursor.rowcount > 0


def run_for_dataset(
    dataset_id: str,
    projects: Iterable[object],
    *,
    dry_run: bool = False,
) -> AssignmentRun:
    """Load, run and persist the ledger of one dataset in a single transaction."""
    projects = list(projects)
    with db_cursor() as cursor:
        lock_dataset(cursor, dataset_id)
        pool = load_pool(cursor, dataset_id)
        existing = load_ledger(cursor, dataset_id, pool.reviewer_count)
        result = plan_assignments(projects, pool, existing)
        if dry_run:
            logger.info("dry run for %s; ledger not saved", dataset_id)
        else:
            save_ledger(cursor, result.ledger)
    return result
