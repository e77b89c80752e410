import logging

from django.contrib.auth import get_user_model
from django.db.models import Count, Max, Q

from core.eligibility import can_schedule, next_eligible_date
from core.exceptions import NotFoundError
from core.models import DONATION_COMPLETED, REQUEST_APPROVED, REQUEST_PENDING, ROLE_ADMIN, ROLE_DONOR, ROLE_PATIENT
from core.permissions import require_role

logger = logging.getLogger(__name__)


def set_account_active(account_id, admin, is_active):
    """Activate or deactivate an account. Accounts are never deleted through the API."""
    require_role(admin, ROLE_ADMIN)
    Account = get_user_model()
    if not Account.objects.filter(pk=account_id).update(is_active=is_active):
        raise NotFoundError('User not found.')
    logger.info("Account %s %s by admin %s", account_id, 'activated' if is_active else 'deactivated', admin.pk)
    return Account.objects.get(pk=account_id)


def accounts_for_admin(role=None, search=None, blood_type=None):
    qs = get_user_model().objects.all()
    if role:
        qs = qs.filter(role=role)
    if blood_type:
        qs = qs.filter(blood_type=blood_type)
    if search:
        qs = qs.filter(
            Q(first_name__icontains=search)
            | Q(last_name__icontains=search)
            | Q(email__icontains=search)
            | Q(username__icontains=search)
            | Q(phone__icontains=search)
        )
    if role == ROLE_DONOR:
        qs = qs.annotate(
            total_donations=Count('donations', distinct=True),
            completed_donations=Count('donations', filter=Q(donations__status=DONATION_COMPLETED), distinct=True),
            last_completed_donation=Max('donations__donation_date', filter=Q(donations__status=DONATION_COMPLETED)),
        )
    elif role == ROLE_PATIENT:
        qs = qs.annotate(
            total_requests=Count('blood_requests', distinct=True),
            pending_requests=Count('blood_requests', filter=Q(blood_requests__status=REQUEST_PENDING), distinct=True),
            approved_requests=Count('blood_requests', filter=Q(blood_requests__status=REQUEST_APPROVED), distinct=True),
            last_request_at=Max('blood_requests__created_at'),
        )
    return qs.order_by('-date_joined')


def eligibility_for(donor, now=None):
    result = can_schedule(donor.last_donation, now=now)
    return {
        'eligible': result.eligible,
        'wait_days_remaining': result.wait_days_remaining,
        'next_eligible_date': next_eligible_date(donor.last_donation),
    }
