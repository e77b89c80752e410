from django.contrib.auth import get_user_model
from django.db.models import Count

from core.models import (
    BLOOD_TYPE_VALUES,
    DONATION_COMPLETED, DONATION_SCHEDULED,
    REQUEST_APPROVED, REQUEST_PENDING, REQUEST_REJECTED,
    ROLE_DONOR, ROLE_PATIENT,
    BloodRequest, Donation,
)
from core.services.accounts import eligibility_for


def admin_summary():
    Account = get_user_model()
    by_role = dict(Account.objects.values_list('role').annotate(count=Count('id')).order_by())
    by_request_status = dict(BloodRequest.objects.values_list('status').annotate(count=Count('id')).order_by())
    by_donation_status = dict(Donation.objects.values_list('status').annotate(count=Count('id')).order_by())
    by_blood_type = dict(BloodRequest.objects.values_list('blood_type').annotate(count=Count('id')).order_by())
    return {
        'total_users': sum(by_role.values()),
        'total_donors': by_role.get(ROLE_DONOR, 0),
        'total_patients': by_role.get(ROLE_PATIENT, 0),
        'pending_requests': by_request_status.get(REQUEST_PENDING, 0),
        'approved_requests': by_request_status.get(REQUEST_APPROVED, 0),
        'rejected_requests': by_request_status.get(REQUEST_REJECTED, 0),
        'total_donations': sum(by_donation_status.values()),
        'completed_donations': by_donation_status.get(DONATION_COMPLETED, 0),
        'scheduled_donations': by_donation_status.get(DONATION_SCHEDULED, 0),
        'requests_by_blood_type': {b: by_blood_type.get(b, 0) for b in BLOOD_TYPE_VALUES},
    }


def donor_summary(donor):
    donations = Donation.objects.filter(donor=donor)
    return {
        'recent_donations': list(donations.order_by('-created_at')[:5]),
        'total_donations': donations.count(),
        'latest_donation': donations.order_by('-donation_date').first(),
        'eligibility': eligibility_for(donor),
    }


def patient_summary(patient):
    requests = BloodRequest.objects.filter(requester=patient)
    return {
        'recent_requests': list(requests.order_by('-created_at')[:5]),
        'total_requests': requests.count(),
        'pending_requests': requests.filter(status=REQUEST_PENDING).count(),
    }
