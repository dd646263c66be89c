from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, Mapping, Sequence

logger = logging.getLogger(__name__)

DEFAULT_REVIEWER_COUNT = 2


class ConfigurationError(ValueError):
    """Raised when a run cannot start because its inputs are malformed."""


def _dedupe(values: Iterable[str]) -> tuple[str, ...]:
    seen: set[str] = set()
    ordered: list[str] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        ordered.append(value)
    return tuple(ordered)


def normalize_names(names: Iterable[str] | None) -> tuple[str, ...]:
    cleaned = (str(name).strip() for name in (names or []))
    return _dedupe(name for name in cleaned if name)


def normalize_reviewer_count(value: object) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"reviewer_count must be an integer, got {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise ConfigurationError(f"reviewer_count must be a whole number, got {value!r}")
    try:
        count = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"reviewer_count must be an integer, got {value!r}") from exc
    if count < 1:
        logger.warning("reviewer_count %s is below 1; clamping to 1", count)
        return 1
    return count


def normalize_meeting_dates(values: Iterable[object] | None) -> tuple[str, ...]:
    normalized: list[str] = []
    for value in values or []:
        if isinstance(value, datetime):
            normalized.append(value.date().isoformat())
            continue
        if isinstance(value, date):
            normalized.append(value.isoformat())
            continue
        text = str(value).strip()
        if not text:
            continue
        try:
            normalized.append(date.fromisoformat(text).isoformat())
        except ValueError as exc:
            raise ConfigurationError(f"meeting date {text!r} is not YYYY-MM-DD") from exc
    return _dedupe(normalized)


@dataclass(frozen=True)
class ReviewerPool:
    reviewer_pool: tuple[str, ...] = ()
    reviewer_count: int = DEFAULT_REVIEWER_COUNT
    meeting_dates: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "reviewer_pool", normalize_names(self.reviewer_pool))
        object.__setattr__(self, "reviewer_count", normalize_reviewer_count(self.reviewer_count))
        object.__setattr__(self, "meeting_dates", normalize_meeting_dates(self.meeting_dates))

    @classmethod
    def from_config(cls, config: Mapping[str, object] | None) -> "ReviewerPool":
        """Build a pool from the admin config shape used by the dashboard.

        Accepts both ``reviewerPool``/``reviewerCount``/``meetingDates`` and
        their snake_case spellings.
        """
        config = config or {}

        def pick(snake: str, camel: str, default: object) -> object:
            if snake in config:
                return config[snake]
            return config.get(camel, default)

        return cls(
            reviewer_pool=tuple(pick("reviewer_pool", "reviewerPool", ()) or ()),
            reviewer_count=pick("reviewer_count", "reviewerCount", DEFAULT_REVIEWER_COUNT),
            meeting_dates=tuple(pick("meeting_dates", "meetingDates", ()) or ()),
        )

    def to_config(self) -> dict[str, object]:
        return {
            "reviewerPool": list(self.reviewer_pool),
            "reviewerCount": self.reviewer_count,
            "meetingDates": list(self.meeting_dates),
        }

    def __contains__(self, reviewer: object) -> bool:
        return reviewer in self.reviewer_pool

    def __len__(self) -> int:
        return len(self.reviewer_pool)


@dataclass
class ReviewerLoad:
    """Per-run load counters for the reviewers of one pool."""

    pool: ReviewerPool
    counts: dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for reviewer in self.pool.reviewer_pool:
            self.counts.setdefault(reviewer, 0)

    @classmethod
    def seeded(
        cls,
        pool: ReviewerPool,
        assignments: Mapping[str, Sequence[str]],
    ) -> "ReviewerLoad":
        load = cls(pool)
        for reviewers in assignments.values():
            for reviewer in reviewers:
                if reviewer in load.counts:
                    load.counts[reviewer] += 1
        return load

    def load(self, reviewer: str) -> int:
        return self.counts.get(reviewer, 0)

    def increment(self, reviewer: str) -> int:
        self.counts[reviewer] = self.counts.get(reviewer, 0) + 1
        return self.counts[reviewer]

    def as_rows(self) -> list[tuple[str, int]]:
        return [(reviewer, self.counts[reviewer]) for reviewer in self.pool.reviewer_pool]
