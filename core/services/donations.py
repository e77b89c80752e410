"""
Donation lifecycle: scheduled -> completed | cancelled, nothing else.

Completing a donation is what moves the donor's `last_donation`, which in turn
drives the 56 day rule checked when the next donation is scheduled.
"""
import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, Sum
from django.db.models.functions import TruncMonth
from django.utils import timezone

from core.eligibility import can_schedule
from core.exceptions import EligibilityError, InvalidStateError, NotFoundError, ValidationError
from core.models import (
    BLOOD_TYPE_VALUES, DONATION_STATUS,
    DONATION_SCHEDULED, DONATION_COMPLETED, DONATION_CANCELLED,
    ROLE_ADMIN, ROLE_DONOR,
    Donation,
)
from core.permissions import require_role

logger = logging.getLogger(__name__)

DONATION_STATUS_VALUES = [s[0] for s in DONATION_STATUS]
ALLOWED_UNITS = (1, 2)
CENTER_FIELDS = ('name', 'address', 'contact')
HEALTH_CHECK_FIELDS = ('hemoglobin', 'blood_pressure', 'temperature', 'weight')


def _locked_donation(donation_id, **scope):
    donation = Donation.objects.select_for_update().filter(pk=donation_id, **scope).first()
    if donation is None:
        raise NotFoundError('Donation not found.')
    return donation


def _apply_health_check(donation, health_check):
    for field in HEALTH_CHECK_FIELDS:
        if field in health_check and health_check[field] is not None:
            setattr(donation, field, health_check[field])


def schedule_donation(donor, donation_date, units, center, notes='', now=None):
    require_role(donor, ROLE_DONOR)
    now = now or timezone.now()

    errors = {}
    if isinstance(units, bool) or units not in ALLOWED_UNITS:
        errors['units'] = ['Units must be 1 or 2.']
    if donation_date is None:
        errors['donation_date'] = ['This field is required.']
    elif donation_date <= now:
        errors['donation_date'] = ['Donation date must be in the future.']
    center = center or {}
    missing = [f for f in CENTER_FIELDS if not str(center.get(f) or '').strip()]
    if missing:
        errors['donation_center'] = [f'Missing {", ".join(missing)}.']
    if not donor.blood_type:
        errors['blood_type'] = ['Set your blood type before scheduling a donation.']
    if errors:
        raise ValidationError(errors)

    result = can_schedule(donor.last_donation, donation_date, now)
    if not result.eligible:
        logger.info("Donor %s not eligible yet, %s days remaining", donor.pk, result.wait_days_remaining)
        raise EligibilityError(result.wait_days_remaining)

    donation = Donation.objects.create(
        donor=donor,
        blood_type=donor.blood_type,
        units=units,
        donation_date=donation_date,
        center_name=center['name'].strip(),
        center_address=center['address'].strip(),
        center_contact=center['contact'].strip(),
        notes=(notes or '').strip(),
        status=DONATION_SCHEDULED,
    )
    logger.info("Donation %s scheduled by donor %s for %s", donation.pk, donor.pk, donation_date.isoformat())
    return donation


def complete_donation(donation_id, admin, notes=None, health_check=None):
    """Mark a scheduled donation completed and move the donor's last_donation to its date."""
    require_role(admin, ROLE_ADMIN)

    with transaction.atomic():
        donation = _locked_donation(donation_id)
        if not donation.is_scheduled:
            raise InvalidStateError('Only scheduled donations can be completed.')
        donation.status = DONATION_COMPLETED
        if notes is not None:
            donation.notes = notes.strip()
        if health_check:
            _apply_health_check(donation, health_check)
        donation.save()

        get_user_model().objects.filter(pk=donation.donor_id).update(last_donation=donation.donation_date)

    logger.info("Donation %s completed by admin %s", donation.pk, admin.pk)
    return donation


def cancel_donation(donation_id, donor):
    require_role(donor, ROLE_DONOR)

    with transaction.atomic():
        donation = _locked_donation(donation_id, donor=donor)
        if not donation.is_scheduled:
            raise InvalidStateError('Only scheduled donations can be cancelled.')
        donation.status = DONATION_CANCELLED
        donation.save(update_fields=['status'])

    logger.info("Donation %s cancelled by donor %s", donation.pk, donor.pk)
    return donation


def update_donation_status(donation_id, admin, new_status, notes=None, health_check=None):
    require_role(admin, ROLE_ADMIN)

    if new_status not in DONATION_STATUS_VALUES:
        raise ValidationError({'status': [f'"{new_status}" is not a valid status.']})
    if new_status == DONATION_COMPLETED:
        return complete_donation(donation_id, admin, notes=notes, health_check=health_check)
    if new_status == DONATION_SCHEDULED:
        raise InvalidStateError('A donation cannot be moved back to scheduled.')

    with transaction.atomic():
        donation = _locked_donation(donation_id)
        if not donation.is_scheduled:
            raise InvalidStateError('Only scheduled donations can be cancelled.')
        donation.status = DONATION_CANCELLED
        if notes is not None:
            donation.notes = notes.strip()
        donation.save(update_fields=['status', 'notes'])

    logger.info("Donation %s cancelled by admin %s", donation.pk, admin.pk)
    return donation


# --------- queries ---------


def donations_visible_to(account, status=None):
    if account.role == ROLE_ADMIN:
        qs = Donation.objects.select_related('donor')
    elif account.role == ROLE_DONOR:
        qs = Donation.objects.filter(donor=account)
    else:
        return Donation.objects.none()
    if status:
        qs = qs.filter(status=status)
    return qs.order_by('-created_at')


def recent_donations(limit=5):
    return (
        Donation.objects.filter(status=DONATION_COMPLETED)
        .select_related('donor')
        .order_by('-donation_date')[:limit]
    )


def donation_stats():
    by_status = dict(Donation.objects.values_list('status').annotate(count=Count('id')).order_by())
    units_by_type = dict(Donation.objects.values_list('blood_type').annotate(units=Sum('units')).order_by())
    monthly = (
        Donation.objects.filter(status=DONATION_COMPLETED)
        .annotate(month=TruncMonth('donation_date'))
        .values('month')
        .annotate(total_units=Sum('units'), count=Count('id'))
        .order_by('-month')[:12]
    )
    return {
        'total_donations': sum(by_status.values()),
        'completed_donations': by_status.get(DONATION_COMPLETED, 0),
        'scheduled_donations': by_status.get(DONATION_SCHEDULED, 0),
        'cancelled_donations': by_status.get(DONATION_CANCELLED, 0),
        'units_by_blood_type': {b: units_by_type.get(b) or 0 for b in BLOOD_TYPE_VALUES},
        'monthly': [
            {'month': row['month'].strftime('%Y-%m'), 'total_units': row['total_units'], 'count': row['count']}
            for row in monthly
        ],
    }
