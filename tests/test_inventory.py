import pytest

from core.models import BLOOD_TYPE_VALUES, BloodRequest
from core.services.inventory import ML_PER_DONOR, estimate, inventory_snapshot


def test_estimate_covers_every_type_in_order():
    rows = estimate({}, {})
    assert [r['blood_type'] for r in rows] == BLOOD_TYPE_VALUES
    assert all(r['available_units'] == 0 for r in rows)


def test_estimate_is_500ml_per_donor():
    rows = {r['blood_type']: r for r in estimate({'O-': 3, 'AB+': 1}, {})}
    assert rows['O-']['available_units'] == 3 * ML_PER_DONOR
    assert rows['O-']['total_donors'] == 3
    assert rows['AB+']['available_units'] == 500
    assert rows['A+']['available_units'] == 0


def test_estimate_pairs_request_aggregates():
    aggregates = {'B+': {'total_requests': 4, 'approved_requests': 1, 'open_requests': 3, 'requested_units': 7}}
    row = next(r for r in estimate({}, aggregates) if r['blood_type'] == 'B+')
    assert row['total_requests'] == 4
    assert row['approved_requests'] == 1
    assert row['open_requests'] == 3
    assert row['requested_units'] == 7
    assert row['available_units'] == 0


@pytest.mark.django_db
def test_snapshot_counts_registered_donors_and_open_requests(make_account, request_details):
    make_account('donor', 'O-')
    make_account('donor', 'O-')
    make_account('patient', 'O-')
    requester = make_account('patient', 'B+')
    request_details.pop('urgency')
    BloodRequest.objects.create(requester=requester, status='pending', **dict(request_details, units=2))
    BloodRequest.objects.create(requester=requester, status='approved', **dict(request_details, units=3))
    BloodRequest.objects.create(requester=requester, status='rejected', **dict(request_details, units=5))

    rows = {r['blood_type']: r for r in inventory_snapshot()}

    assert rows['O-']['total_donors'] == 2
    assert rows['O-']['available_units'] == 1000
    assert rows['B+'] == {
        'blood_type': 'B+',
        'available_units': 0,
        'total_donors': 0,
        'total_requests': 3,
        'approved_requests': 1,
        'open_requests': 2,
        'requested_units': 5,
    }
