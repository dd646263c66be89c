from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from .ledger import AssignmentLedger
from .pool import ConfigurationError, ReviewerLoad, ReviewerPool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Assignment:
    project: str
    reviewer: str
    load: int


@dataclass
class AssignmentRun:
    ledger: AssignmentLedger
    processed: list[str] = field(default_factory=list)
    picks: list[Assignment] = field(default_factory=list)
    carried: list[str] = field(default_factory=list)
    loads: dict[str, int] = field(default_factory=dict)

    @property
    def overflow(self) -> list[str]:
        return [project for project in self.processed if self.ledger.is_overflow(project)]


def validate_projects(projects: Iterable[object]) -> list[str]:
    keys: list[str] = []
    seen: set[str] = set()
    duplicates: list[str] = []
    for project in projects:
        key = str(project)
        if not key.strip():
            raise ConfigurationError("project keys must not be blank")
        if key in seen:
            duplicates.append(key)
            continue
        seen.add(key)
        keys.append(key)
    if duplicates:
        raise ConfigurationError(f"duplicate project keys: {', '.join(sorted(set(duplicates)))}")
    return keys


def pick_reviewer(
    pool: ReviewerPool,
    load: ReviewerLoad,
    assigned: Sequence[str],
) -> str | None:
    eligible = [
        (load.load(reviewer), index, reviewer)
        for index, reviewer in enumerate(pool.reviewer_pool)
        if reviewer not in assigned
    ]
    if not eligible:
        return None
    eligible.sort()
    return eligible[0][2]


def plan_assignments(
    projects: Iterable[object],
    pool: ReviewerPool,
    existing: AssignmentLedger | None = None,
) -> AssignmentRun:
    """Greedily top up every project to ``pool.reviewer_count`` reviewers.

    Projects are handled in the order supplied. Each pick goes to the pool
    member with the lowest running load who is not already on the project,
    ties going to the earlier pool entry. Projects that already meet the
    target are carried forward untouched. The existing ledger is copied, never
    mutated.
    """
    if pool.reviewer_count < 1:
        raise ConfigurationError(f"reviewer_count must be at least 1, got {pool.reviewer_count}")
    keys = validate_projects(projects)

    ledger = existing.copy() if existing is not None else AssignmentLedger()
    ledger.reviewer_count = pool.reviewer_count
    load = ReviewerLoad.seeded(pool, ledger.assignments)
    result = AssignmentRun(ledger=ledger, processed=keys)

    for project in keys:
        ledger.track(project)
        assigned = ledger.reviewers_for(project)
        if len(assigned) >= pool.reviewer_count:
            result.carried.append(project)
            continue

        while len(assigned) < pool.reviewer_count:
            reviewer = pick_reviewer(pool, load, assigned)
            if reviewer is None:
                break
            assigned.append(reviewer)
            current = load.increment(reviewer)
            result.picks.append(Assignment(project=project, reviewer=reviewer, load=current))
            logger.debug("assigned %s to %s (load %d)", reviewer, project, current)

        if assigned:
            ledger.assignments[project] = assigned

    result.loads = dict(load.as_rows())
    logger.info(
        "auto-assign: %d projects, %d picks, %d carried forward, %d overflow",
        len(keys),
        len(result.picks),
        len(result.carried),
        len(result.overflow),
    )
    return result


def run(
    projects: Iterable[object],
    pool: ReviewerPool,
    existing: AssignmentLedger | None = None,
) -> AssignmentLedger:
    return plan_assignments(projects, pool, existing).ledger
