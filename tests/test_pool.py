import logging

import pytest

from reviewer_assignment.pool import ConfigurationError, ReviewerLoad, ReviewerPool


def test_pool_normalizes_names_and_keeps_order():
    pool = ReviewerPool(reviewer_pool=[" Alice ", "Bob", "Alice", "", "alice"])

    assert pool.reviewer_pool == ("Alice", "Bob", "alice")
    assert pool.reviewer_count == 2
    assert "Bob" in pool
    assert "bob" not in pool


def test_reviewer_count_below_one_is_clamped(caplog):
    with caplog.at_level(logging.WARNING, logger="reviewer_assignment.pool"):
        pool = ReviewerPool(reviewer_pool=["Alice"], reviewer_count=0)

    assert pool.reviewer_count == 1
    assert "clamping" in caplog.text


@pytest.mark.parametrize("value", ["two", None, True])
def test_reviewer_count_must_be_an_integer(value):
    with pytest.raises(ConfigurationError):
        ReviewerPool(reviewer_count=value)


def test_meeting_dates_are_iso_and_deduplicated():
    pool = ReviewerPool(meeting_dates=["2026-03-05", "2026-02-01", "2026-03-05"])

    assert pool.meeting_dates == ("2026-03-05", "2026-02-01")

    with pytest.raises(ConfigurationError):
        ReviewerPool(meeting_dates=["next tuesday"])


def test_from_config_accepts_dashboard_keys():
    pool = ReviewerPool.from_config(
        {"reviewerPool": ["Alice", "Bob"], "reviewerCount": "3", "meetingDates": ["2026-04-01"]}
    )

    assert pool.reviewer_pool == ("Alice", "Bob")
    assert pool.reviewer_count == 3
    assert pool.to_config() == {
        "reviewerPool": ["Alice", "Bob"],
        "reviewerCount": 3,
        "meetingDates": ["2026-04-01"],
    }
    assert ReviewerPool.from_config(None) == ReviewerPool()


def test_reviewer_load_seeds_only_pool_members():
    pool = ReviewerPool(reviewer_pool=["Alice", "Bob"])
    load = ReviewerLoad.seeded(pool, {"P1": ["Alice", "Zed"], "P2": ["Alice"]})

    assert load.load("Alice") == 2
    assert load.load("Bob") == 0
    assert load.load("Zed") == 0
    assert load.increment("Bob") == 1
    assert load.as_rows() == [("Alice", 2), ("Bob", 1)]


def test_fractional_reviewer_count_is_rejected():
    with pytest.raises(ConfigurationError, match="whole number"):
        ReviewerPool(reviewer_count=2.5)

    assert ReviewerPool(reviewer_count=3.0).reviewer_count == 3
