from contextlib import contextmanager
from datetime import date

import pytest

from reviewer_assignment import store
from reviewer_assignment.ledger import AssignmentLedger
from reviewer_assignment.pool import ConfigurationError, ReviewerPool


class FakeCursor:
    def __init__(self, rows=None):
        self.rows = list(rows or [])
        self.executed = []
        self.rowcount = 0

    def execute(self, query, params=None):
        self.executed.append((" ".join(query.split()), params))

    def fetchone(self):
        return self.rows.pop(0) if self.rows else None

    def fetchall(self):
        rows, self.rows = self.rows, []
        return rows


def _patch_cursor(monkeypatch, cursor):
    @contextmanager
    def fake_db_cursor():
        yield cursor

    monkeypatch.setattr(store, "db_cursor", fake_db_cursor)


def test_load_pool_defaults_when_unconfigured():
    cursor = FakeCursor()

    assert store.load_pool(cursor, "spring") == ReviewerPool()
    assert cursor.executed[0][1] == ("spring",)


def test_load_pool_reads_config_row():
    cursor = FakeCursor([(["Alice", "Bob"], 3, [date(2026, 3, 1)])])

    pool = store.load_pool(cursor, "spring")

    assert pool.reviewer_pool == ("Alice", "Bob")
    assert pool.reviewer_count == 3
    assert pool.meeting_dates == ("2026-03-01",)


def test_save_ledger_writes_payload_as_json():
    cursor = FakeCursor()
    ledger = AssignmentLedger(dataset_id="spring", assignments={"P1": ["Alice"]})

    store.save_ledger(cursor, ledger)

    query, params = cursor.executed[0]
    assert "INSERT INTO reviewer_assignment.assignment_ledgers" in query
    assert params[0] == "spring"
    assert params[1].adapted == ledger.to_payload()


def test_save_ledger_requires_dataset():
    with pytest.raises(ValueError):
        store.save_ledger(FakeCursor(), AssignmentLedger())


def test_run_for_dataset_locks_runs_and_saves(monkeypatch):
    cursor = FakeCursor(
        [
            (["Alice", "Bob"], 2, []),
            ({"assignments": {"P1": ["Alice", "Bob"]}},),
        ]
    )
    _patch_cursor(monkeypatch, cursor)

    result = store.run_for_dataset("spring", ["P1", "P2"])

    queries = [query for query, _ in cursor.executed]
    assert queries[0].startswith("SELECT pg_advisory_xact_lock")
    assert "assignment_ledgers" in queries[-1] and queries[-1].startswith("INSERT")
    assert result.carried == ["P1"]
    assert result.ledger.dataset_id == "spring"
    assert result.ledger.assignments["P2"] == ["Alice", "Bob"]


def test_run_for_dataset_dry_run_skips_save(monkeypatch):
    cursor = FakeCursor([(["Alice"], 1, []), None])
    _patch_cursor(monkeypatch, cursor)

    result = store.run_for_dataset("spring", ["P1"], dry_run=True)

    assert not any(query.startswith("INSERT") for query, _ in cursor.executed)
    assert result.ledger.assignments == {"P1": ["Alice"]}


def test_run_for_dataset_rejects_bad_input_before_saving(monkeypatch):
    cursor = FakeCursor([(["Alice"], 1, []), None])
    _patch_cursor(monkeypatch, cursor)

    with pytest.raises(ConfigurationError):
        store.run_for_dataset("spring", ["P1", "P1"])

    assert not any(query.startswith("INSERT") for query, _ in cursor.executed)


def test_load_directory_maps_names_to_addresses():
    cursor = FakeCursor([("Alice", "alice@example.org"), ("Bob", None)])

    assert store.load_directory(cursor) == {"Alice": "alice@example.org", "Bob": None}


def test_database_url_is_required(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)

    with pytest.raises(RuntimeError, match="DATABASE_URL"):
        store.get_database_url()


def test_clear_ledger_locks_and_saves_an_empty_payload():
    cursor = FakeCursor()

    store.clear_ledger(cursor, "spring")

    (lock_query, lock_params), (save_query, save_params) = cursor.executed
    assert lock_query.startswith("SELECT pg_advisory_xact_lock")
    assert lock_params == ("spring",)
    assert "assignment_ledgers" in save_query
    assert save_params[0] == "spring"
    assert save_params[1].adapted == {
        "projects": [],
        "assignments": {},
        "overflow": [],
        "meeting_dates": {},
    }


def test_save_directory_upserts_every_entry():
    cursor = FakeCursor()

    saved = store.save_directory(cursor, {"Alice": "alice@example.org", "Bob": ""})

    assert saved == 2
    assert [params for _, params in cursor.executed] == [
        ("Alice", "alice@example.org"),
        ("Bob", None),
    ]


def test_remove_directory_entry_reports_deleted_rows():
    cursor = FakeCursor()
    cursor.rowcount = 1

    assert store.remove_directory_entry(cursor, "Alice") is True
    assert cursor.executed[0][0].startswith("DELETE FROM reviewer_assignment.reviewer_directory")

    cursor.rowcount = 0
    assert store.remove_directory_entry(cursor, "Zed") is False
