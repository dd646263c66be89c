from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from .pool import (
    DEFAULT_REVIEWER_COUNT,
    ConfigurationError,
    normalize_meeting_dates,
    normalize_reviewer_count,
)


@dataclass
class AssignmentLedger:
    """Project to reviewer assignments for a single dataset.

    ``projects`` is the ordered list of tracked project keys, including
    projects that have no reviewer yet. ``overflow`` is always derived from
    ``assignments`` and ``reviewer_count``; it is never stored separately.
    """

    dataset_id: str | None = None
    reviewer_count: int = DEFAULT_REVIEWER_COUNT
    projects: list[str] = field(default_factory=list)
    assignments: dict[str, list[str]] = field(default_factory=dict)
    meeting_dates: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.reviewer_count = normalize_reviewer_count(self.reviewer_count)
        tracked = list(dict.fromkeys(self.projects))
        cleaned: dict[str, list[str]] = {}
        for project, reviewers in self.assignments.items():
            if project not in tracked:
                tracked.append(project)
            names = list(dict.fromkeys(name for name in reviewers if name.strip()))
            if names:
                cleaned[project] = names
        self.projects = tracked
        self.assignments = cleaned

    @property
    def overflow(self) -> frozenset[str]:
        return frozenset(self.overflow_keys())

    def overflow_keys(self) -> list[str]:
        return [project for project in self.projects if self.is_overflow(project)]

    def is_overflow(self, project: str) -> bool:
        return len(self.assignments.get(project, ())) < self.reviewer_count

    def reviewers_for(self, project: str) -> list[str]:
        return list(self.assignments.get(project, ()))

    def track(self, project: str) -> None:
        if project not in self.projects:
            self.projects.append(project)

    def copy(self) -> "AssignmentLedger":
        return AssignmentLedger(
            dataset_id=self.dataset_id,
            reviewer_count=self.reviewer_count,
            projects=list(self.projects),
            assignments={project: list(names) for project, names in self.assignments.items()},
            meeting_dates=dict(self.meeting_dates),
        )

    def clear(self) -> None:
        self.projects.clear()
        self.assignments.clear()
        self.meeting_dates.clear()

    def manual_assign(self, project: str, reviewer: str) -> bool:
        """Add ``reviewer`` to ``project``; returns False when already present."""
        reviewer = (reviewer or "").strip()
        if not reviewer:
            raise ConfigurationError(f"reviewer name for {project!r} must not be blank")
        self.track(project)
        reviewers = self.assignments.setdefault(project, [])
        if reviewer in reviewers:
            return False
        reviewers.append(reviewer)
        return True

    def manual_unassign(self, project: str, reviewer: str) -> bool:
        reviewers = self.assignments.get(project)
        if not reviewers or reviewer not in reviewers:
            return False
        reviewers.remove(reviewer)
        if not reviewers:
            del self.assignments[project]
        return True

    def schedule(
        self,
        project: str,
        meeting_date: str | None,
        allowed: Iterable[str] = (),
    ) -> None:
        """Tag ``project`` with a meeting date, or untag it when the date is empty.

        When ``allowed`` is given the date must be one of those candidates.
        """
        if not meeting_date or not meeting_date.strip():
            self.meeting_dates.pop(project, None)
            return
        (normalized,) = normalize_meeting_dates([meeting_date])
        allowed = tuple(allowed)
        if allowed and normalized not in allowed:
            raise ConfigurationError(
                f"meeting date {normalized} is not one of the configured dates: {', '.join(allowed)}"
            )
        self.track(project)
        self.meeting_dates[project] = normalized

    def loads(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for reviewers in self.assignments.values():
            for reviewer in reviewers:
                counts[reviewer] = counts.get(reviewer, 0) + 1
        return counts

    def to_payload(self) -> dict[str, object]:
        return {
            "projects": list(self.projects),
            "assignments": {
                project: list(self.assignments[project])
                for project in self.projects
                if project in self.assignments
            },
            "overflow": self.overflow_keys(),
            "meeting_dates": {
                project: self.meeting_dates[project]
                for project in self.projects
                if project in self.meeting_dates
            },
        }

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, object] | None,
        *,
        dataset_id: str | None = None,
        reviewer_count: int = DEFAULT_REVIEWER_COUNT,
    ) -> "AssignmentLedger":
        """Load a stored payload.

        A stored ``overflow`` list only contributes project keys to track;
        membership is recomputed against ``reviewer_count``.
        """
        payload = payload or {}
        projects: list[str] = list(payload.get("projects") or [])  # type: ignore[arg-type]
        for project in _as_list(payload.get("overflow")):
            if project not in projects:
                projects.append(project)
        assignments = payload.get("assignments") or {}
        return cls(
            dataset_id=dataset_id,
            reviewer_count=reviewer_count,
            projects=projects,
            assignments={
                str(project): _as_list(names)
                for project, names in assignments.items()  # type: ignore[union-attr]
            },
            meeting_dates=dict(payload.get("meeting_dates") or {}),  # type: ignore[arg-type]
        )


def _as_list(value: object) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Iterable):
        return [str(item) for item in value]
    return []
