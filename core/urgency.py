# core/urgency.py
"""
Keyword and time-window triage for blood requests.

The classifier is a suggestion service: request creation does not call it,
urgency is either supplied by the patient or defaulted for donor requests.
"""
import math
from collections import namedtuple
from datetime import datetime

from django.utils import timezone

from .models import URGENCY_CRITICAL, URGENCY_HIGH, URGENCY_LOW, URGENCY_MEDIUM

CRITICAL_KEYWORDS = (
    'accident', 'emergency', 'critical', 'urgent', 'immediate', 'trauma',
    'bleeding', 'hemorrhage', 'shock', 'unconscious', 'life-threatening',
    'severe', 'acute', 'crash', 'injury', 'wound', 'stab', 'gunshot',
    'burn', 'drowning', 'heart attack', 'stroke', 'seizure',
)

HIGH_KEYWORDS = (
    'operation', 'surgery', 'delivery', 'birth', 'labor', 'cesarean',
    'transplant', 'procedure', 'treatment', 'therapy', 'dialysis',
    'chemotherapy', 'radiation', 'infusion', 'transfusion',
)

MEDIUM_KEYWORDS = (
    'scheduled', 'planned', 'routine', 'checkup', 'examination',
    'consultation', 'follow-up', 'monitoring', 'observation',
)

SECONDS_PER_DAY = 24 * 60 * 60

UrgencyAssessment = namedtuple('UrgencyAssessment', ['tier', 'explanation'])


def days_until(required_by, now=None):
    """Whole days until `required_by`, rounded up. Negative for past dates."""
    if not isinstance(required_by, datetime):
        raise TypeError("required_by must be a datetime")
    now = now or timezone.now()
    return math.ceil((required_by - now).total_seconds() / SECONDS_PER_DAY)


def _matching(text, keywords):
    return [k for k in keywords if k in text]


def _window(days):
    if days <= 1:
        return 'within 1 day'
    if days <= 3:
        return 'within 3 days'
    return 'after 3 days'


def classify(reason, required_by, now=None):
    days = days_until(required_by, now)
    text = (reason or '').lower()

    found = _matching(text, CRITICAL_KEYWORDS)
    if found:
        return UrgencyAssessment(
            URGENCY_CRITICAL,
            f"Critical keywords found in reason ({', '.join(found)})",
        )

    found = _matching(text, HIGH_KEYWORDS)
    if found:
        if days <= 1:
            tier = URGENCY_HIGH
        elif days <= 3:
            tier = URGENCY_MEDIUM
        else:
            tier = URGENCY_LOW
        return UrgencyAssessment(
            tier,
            f"High urgency keywords ({', '.join(found)}) + required {_window(days)}",
        )

    found = _matching(text, MEDIUM_KEYWORDS)
    if found:
        tier = URGENCY_MEDIUM if days <= 3 else URGENCY_LOW
        return UrgencyAssessment(
            tier,
            f"Routine keywords ({', '.join(found)}) + required {_window(days)}",
        )

    if days <= 1:
        tier = URGENCY_HIGH
    elif days <= 3:
        tier = URGENCY_MEDIUM
    else:
        tier = URGENCY_LOW
    return UrgencyAssessment(tier, f"Time-based urgency: required in {days} days")
