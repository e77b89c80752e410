from collections import namedtuple
from datetime import timedelta

from django.utils import timezone

MIN_DAYS_BETWEEN_DONATIONS = 56

EligibilityResult = namedtuple('EligibilityResult', ['eligible', 'wait_days_remaining'])


def days_since(last_donation, now=None):
    now = now or timezone.now()
    return (now - last_donation) // timedelta(days=1)


def can_schedule(last_donation, proposed_date=None, now=None):
    """
    Whether a donor whose last completed donation was `last_donation` may book
    another one. `proposed_date` is not checked here: callers make sure it is
    in the future before asking.
    """
    if last_donation is None:
        return EligibilityResult(True, 0)
    elapsed = days_since(last_donation, now)
    wait = max(0, MIN_DAYS_BETWEEN_DONATIONS - elapsed)
    return EligibilityResult(elapsed >= MIN_DAYS_BETWEEN_DONATIONS, wait)


def next_eligible_date(last_donation):
    if last_donation is None:
        return None
    return last_donation + timedelta(days=MIN_DAYS_BETWEEN_DONATIONS)
