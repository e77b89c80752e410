from datetime import datetime, timedelta, timezone as dt_timezone

import pytest

from core.eligibility import MIN_DAYS_BETWEEN_DONATIONS, can_schedule, next_eligible_date

NOW = datetime(2024, 6, 15, 9, 30, tzinfo=dt_timezone.utc)
NEXT_WEEK = NOW + timedelta(days=7)


def test_never_donated_is_always_eligible():
    assert can_schedule(None, NEXT_WEEK, NOW) == (True, 0)


def test_forty_days_ago_waits_sixteen_more():
    result = can_schedule(NOW - timedelta(days=40), NEXT_WEEK, NOW)
    assert not result.eligible
    assert result.wait_days_remaining == 16


def test_sixty_days_ago_is_eligible():
    assert can_schedule(NOW - timedelta(days=60), NEXT_WEEK, NOW) == (True, 0)


@pytest.mark.parametrize('elapsed, eligible, wait', [
    (timedelta(days=55, hours=23), False, 1),   # floors to 55 days
    (timedelta(days=56), True, 0),
    (timedelta(days=56, hours=1), True, 0),
    (timedelta(hours=5), False, 56),
])
def test_boundary_uses_whole_elapsed_days(elapsed, eligible, wait):
    result = can_schedule(NOW - elapsed, NEXT_WEEK, NOW)
    assert result.eligible is eligible
    assert result.wait_days_remaining == wait


def test_proposed_date_is_not_checked_here():
    assert can_schedule(None, NOW - timedelta(days=3), NOW).eligible


def test_next_eligible_date():
    last = NOW - timedelta(days=10)
    assert next_eligible_date(last) == last + timedelta(days=MIN_DAYS_BETWEEN_DONATIONS)
    assert next_eligible_date(None) is None
