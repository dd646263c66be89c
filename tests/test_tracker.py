from reviewer_assignment.ledger import AssignmentLedger
from reviewer_assignment.tracker import UNSCHEDULED, build_tracker_view, group_by_meeting_date


def _ledger():
    return AssignmentLedger(
        reviewer_count=2,
        projects=["P1", "P2", "P3"],
        assignments={"P1": ["Alice", "Bob"], "P2": ["Roberta"]},
        meeting_dates={"P2": "2026-03-01", "P1": "2026-04-01"},
    )


def test_empty_query_returns_every_project():
    rows = build_tracker_view(_ledger(), "  ")

    assert [row.project for row in rows] == ["P1", "P2", "P3"]
    assert [row.overflow for row in rows] == [False, True, True]


def test_query_is_case_insensitive_substring():
    rows = build_tracker_view(_ledger(), "BO")

    assert [row.project for row in rows] == ["P1"]

    rows = build_tracker_view(_ledger(), "rob")
    assert [row.project for row in rows] == ["P2"]
    assert rows[0].reviewers == ("Roberta",)
    assert rows[0].meeting_date == "2026-03-01"


def test_group_by_meeting_date_puts_unscheduled_last():
    grouped = group_by_meeting_date(build_tracker_view(_ledger()))

    assert list(grouped) == ["2026-03-01", "2026-04-01", UNSCHEDULED]
    assert [row.project for row in grouped[UNSCHEDULED]] == ["P3"]
