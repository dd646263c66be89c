from __future__ import annotations

from dataclasses import dataclass

from .ledger import AssignmentLedger

UNSCHEDULED = "unscheduled"


@dataclass(frozen=True)
class TrackerRow:
    project: str
    reviewers: tuple[str, ...]
    overflow: bool
    meeting_date: str | None


def matches_assignee(reviewers: tuple[str, ...], query: str) -> bool:
    needle = query.strip().casefold()
    if not needle:
        return True
    return any(needle in reviewer.casefold() for reviewer in reviewers)


def build_tracker_view(ledger: AssignmentLedger, assignee_query: str = "") -> list[TrackerRow]:
    rows = []
    for project in ledger.projects:
        reviewers = tuple(ledger.assignments.get(project, ()))
        if not matches_assignee(reviewers, assignee_query or ""):
            continue
        rows.append(
            TrackerRow(
                project=project,
                reviewers=reviewers,
                overflow=ledger.is_overflow(project),
                meeting_date=ledger.meeting_dates.get(project),
            )
        )
    return rows


def group_by_meeting_date(rows: list[TrackerRow]) -> dict[str, list[TrackerRow]]:
    """Group rows by meeting date, oldest first, unscheduled rows last."""
    dated: dict[str, list[TrackerRow]] = {}
    unscheduled: list[TrackerRow] = []
    for row in rows:
        if row.meeting_date is None:
            unscheduled.append(row)
            continue
        dated.setdefault(row.meeting_date, []).append(row)

    grouped = {key: dated[key] for key in sorted(dated)}
    if unscheduled:
        grouped[UNSCHEDULED] = unscheduled
    return grouped
