"""
Per blood type availability estimate for the dashboards.

This is not a ledger of drawn or used units. Availability is approximated as
500 ml per registered donor of that type, and dashboards rely on exactly that
figure, so keep it as is.
"""
from django.contrib.auth import get_user_model
from django.db.models import Count, Q, Sum

from core.models import BLOOD_TYPE_VALUES, REQUEST_APPROVED, REQUEST_PENDING, ROLE_DONOR, BloodRequest

ML_PER_DONOR = 500
OPEN_STATUSES = (REQUEST_PENDING, REQUEST_APPROVED)


def estimate(donor_counts_by_type, request_aggregates_by_type):
    """
    Build one row per blood type, in canonical order, from pre-aggregated counts.

    `donor_counts_by_type` maps blood type -> registered donors.
    `request_aggregates_by_type` maps blood type -> dict with any of
    total_requests, approved_requests, open_requests, requested_units.
    Missing types count as zero.
    """
    rows = []
    for blood_type in BLOOD_TYPE_VALUES:
        donors = int(donor_counts_by_type.get(blood_type) or 0)
        requests = request_aggregates_by_type.get(blood_type) or {}
        rows.append({
            'blood_type': blood_type,
            'available_units': donors * ML_PER_DONOR,
            'total_donors': donors,
            'total_requests': int(requests.get('total_requests') or 0),
            'approved_requests': int(requests.get('approved_requests') or 0),
            'open_requests': int(requests.get('open_requests') or 0),
            'requested_units': int(requests.get('requested_units') or 0),
        })
    return rows


def donor_counts_by_type():
    return dict(
        get_user_model().objects.filter(role=ROLE_DONOR)
        .values_list('blood_type')
        .annotate(count=Count('id'))
        .order_by()
    )


def request_aggregates_by_type():
    rows = (
        BloodRequest.objects.values('blood_type')
        .annotate(
            total_requests=Count('id'),
            approved_requests=Count('id', filter=Q(status=REQUEST_APPROVED)),
            open_requests=Count('id', filter=Q(status__in=OPEN_STATUSES)),
            requested_units=Sum('units', filter=Q(status__in=OPEN_STATUSES)),
        )
        .order_by()
    )
    return {row.pop('blood_type'): row for row in rows}


def inventory_snapshot():
    return estimate(donor_counts_by_type(), request_aggregates_by_type())
