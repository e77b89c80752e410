"""
Blood request lifecycle.

    pending -> approved | rejected   (admin review)
    pending -> cancelled             (owner, or admin review)

Nothing leaves approved/rejected/cancelled and nothing goes back to pending.
Interested donors can only be added or removed while a request is pending.
"""
import logging

from django.db import transaction
from django.db.models import Case, Count, IntegerField, Q, Value, When
from django.utils import timezone

from core.exceptions import InvalidStateError, NotFoundError, ValidationError
from core.models import (
    BLOOD_TYPE_VALUES, REQUEST_STATUS, URGENCY_CHOICES,
    REQUEST_PENDING, REQUEST_APPROVED, REQUEST_CANCELLED,
    ROLE_ADMIN, ROLE_DONOR, ROLE_PATIENT,
    URGENCY_CRITICAL, URGENCY_HIGH, URGENCY_MEDIUM, URGENCY_LOW,
    BloodRequest, DonorInterest,
)
from core.permissions import require_role

logger = logging.getLogger(__name__)

REQUEST_STATUS_VALUES = [s[0] for s in REQUEST_STATUS]
URGENCY_VALUES = [u[0] for u in URGENCY_CHOICES]

REQUIRED_FIELDS = ('blood_type', 'units', 'reason', 'hospital_name', 'hospital_address', 'hospital_contact', 'required_by')
PATCHABLE_FIELDS = REQUIRED_FIELDS + ('urgency',)


def _validate_fields(data, now, required=()):
    errors = {}

    for field in required:
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            errors[field] = ['This field is required.']

    for field, value in data.items():
        if value is None and field not in errors:
            errors[field] = ['This field may not be null.']

    if 'blood_type' in data and 'blood_type' not in errors and data['blood_type'] not in BLOOD_TYPE_VALUES:
        errors['blood_type'] = ['Invalid blood type.']

    if 'units' in data and 'units' not in errors:
        units = data['units']
        if isinstance(units, bool) or not isinstance(units, int) or units < 1:
            errors['units'] = ['Units must be greater than zero.']

    if 'urgency' in data and 'urgency' not in errors and data['urgency'] not in URGENCY_VALUES:
        errors['urgency'] = ['Invalid urgency level.']

    for field in ('reason', 'hospital_name', 'hospital_address', 'hospital_contact'):
        if field in data and field not in errors:
            value = data[field]
            if not isinstance(value, str) or not value.strip():
                errors[field] = ['This field may not be blank.']

    if 'required_by' in data and 'required_by' not in errors and data['required_by'] <= now:
        errors['required_by'] = ['Required date must be in the future.']

    if errors:
        raise ValidationError(errors)


def _locked_request(request_id, **scope):
    blood_request = BloodRequest.objects.select_for_update().filter(pk=request_id, **scope).first()
    if blood_request is None:
        raise NotFoundError('Blood request not found.')
    return blood_request


def create_request(requester, details, now=None):
    """
    Create a pending request owned by `requester`.

    Patients choose the urgency. Requests raised by donors for themselves always
    start at medium urgency, whatever the payload says.
    """
    require_role(requester, ROLE_DONOR, ROLE_PATIENT)
    now = now or timezone.now()

    data = {k: details.get(k) for k in PATCHABLE_FIELDS if k in details}
    if requester.role == ROLE_PATIENT:
        _validate_fields(data, now, required=REQUIRED_FIELDS + ('urgency',))
    else:
        _validate_fields(data, now, required=REQUIRED_FIELDS)
        data['urgency'] = URGENCY_MEDIUM

    for field in ('reason', 'hospital_name', 'hospital_address', 'hospital_contact'):
        data[field] = data[field].strip()

    blood_request = BloodRequest.objects.create(requester=requester, status=REQUEST_PENDING, **data)
    logger.info(
        "Blood request %s created by %s %s (%s x%s, %s)",
        blood_request.pk, requester.role, requester.pk, blood_request.blood_type,
        blood_request.units, blood_request.urgency,
    )
    return blood_request


def express_interest(request_id, donor, interested):
    """Add or remove `donor` from the interested list. Repeats are no-ops."""
    require_role(donor, ROLE_DONOR)

    with transaction.atomic():
        blood_request = _locked_request(request_id)
        if not blood_request.is_pending:
            raise InvalidStateError('Can only express interest in pending requests.')

        if interested:
            DonorInterest.objects.get_or_create(blood_request=blood_request, donor=donor)
        else:
            DonorInterest.objects.filter(blood_request=blood_request, donor=donor).delete()
        blood_request.save(update_fields=['updated_at'])

    logger.info(
        "Donor %s %s interest in request %s",
        donor.pk, 'registered' if interested else 'withdrew', blood_request.pk,
    )
    return blood_request


def update_request_status(request_id, admin, new_status, notes=None):
    """
    Admin review of a pending request.

    The status enum still contains `pending`, but moving a request back to
    pending is refused: only pending -> approved/rejected/cancelled is allowed.
    The update is conditional on the row still being pending, so two admins
    reviewing at once cannot both win.
    """
    require_role(admin, ROLE_ADMIN)

    if new_status not in REQUEST_STATUS_VALUES:
        raise ValidationError({'status': [f'"{new_status}" is not a valid status.']})
    if new_status == REQUEST_PENDING:
        raise InvalidStateError('A request cannot be moved back to pending.')

    changes = {'status': new_status, 'reviewed_by': admin, 'updated_at': timezone.now()}
    if notes is not None:
        changes['admin_notes'] = notes.strip()

    updated = BloodRequest.objects.filter(pk=request_id, status=REQUEST_PENDING).update(**changes)
    if not updated:
        if not BloodRequest.objects.filter(pk=request_id).exists():
            raise NotFoundError('Blood request not found.')
        raise InvalidStateError('Only pending requests can be reviewed.')

    logger.info("Blood request %s set to %s by admin %s", request_id, new_status, admin.pk)
    return BloodRequest.objects.select_related('requester').get(pk=request_id)


def cancel_request(request_id, requester):
    require_role(requester, ROLE_DONOR, ROLE_PATIENT)

    with transaction.atomic():
        blood_request = _locked_request(request_id, requester=requester)
        if not blood_request.is_pending:
            raise InvalidStateError('Only pending requests can be cancelled.')
        blood_request.status = REQUEST_CANCELLED
        blood_request.save(update_fields=['status', 'updated_at'])

    logger.info("Blood request %s cancelled by owner %s", request_id, requester.pk)
    return blood_request


def update_request(request_id, requester, patch, now=None):
    """
    Owner edit of a pending request. Donor self requests stay at medium
    urgency, so an urgency in a donor's patch is dropped.
    """
    require_role(requester, ROLE_DONOR, ROLE_PATIENT)
    now = now or timezone.now()
    if requester.role == ROLE_DONOR:
        patch = {k: v for k, v in patch.items() if k != 'urgency'}

    unknown = sorted(set(patch) - set(PATCHABLE_FIELDS))
    if unknown:
        raise ValidationError({field: ['This field cannot be changed.'] for field in unknown})
    _validate_fields(patch, now)

    with transaction.atomic():
        blood_request = _locked_request(request_id, requester=requester)
        if not blood_request.is_pending:
            raise InvalidStateError('Only pending requests can be updated.')
        for field, value in patch.items():
            setattr(blood_request, field, value.strip() if isinstance(value, str) else value)
        blood_request.save(update_fields=list(patch) + ['updated_at'])

    return blood_request


# --------- queries ---------


def requests_visible_to(account, status=None, urgency=None, blood_type=None, search=None, mine=False):
    qs = BloodRequest.objects.select_related('requester').prefetch_related('interests')

    if account.role == ROLE_PATIENT or (account.role == ROLE_DONOR and mine):
        qs = qs.filter(requester=account)
    elif account.role not in (ROLE_ADMIN, ROLE_DONOR):
        return qs.none()

    if status:
        qs = qs.filter(status=status)
    if urgency:
        qs = qs.filter(urgency=urgency)
    if blood_type:
        qs = qs.filter(blood_type=blood_type)
    if search:
        qs = qs.filter(
            Q(requester__first_name__icontains=search)
            | Q(requester__last_name__icontains=search)
            | Q(requester__email__icontains=search)
            | Q(reason__icontains=search)
        )
    return qs.order_by('-created_at')


def public_requests(blood_type=None, urgency=None, limit=10):
    """Approved requests, most urgent first, then by how soon they are needed."""
    qs = BloodRequest.objects.filter(status=REQUEST_APPROVED).select_related('requester')
    if blood_type:
        qs = qs.filter(blood_type=blood_type)
    if urgency:
        qs = qs.filter(urgency=urgency)
    severity = Case(
        When(urgency=URGENCY_CRITICAL, then=Value(3)),
        When(urgency=URGENCY_HIGH, then=Value(2)),
        When(urgency=URGENCY_MEDIUM, then=Value(1)),
        When(urgency=URGENCY_LOW, then=Value(0)),
        output_field=IntegerField(),
    )
    return qs.annotate(severity=severity).order_by('-severity', 'required_by')[:limit]


def interested_requests(donor):
    require_role(donor, ROLE_DONOR)
    return (
        BloodRequest.objects.filter(interests__donor=donor)
        .select_related('requester')
        .prefetch_related('interests')
        .order_by('-created_at')
    )


def request_stats():
    by_status = dict(BloodRequest.objects.values_list('status').annotate(count=Count('id')).order_by())
    by_urgency = dict(BloodRequest.objects.values_list('urgency').annotate(count=Count('id')).order_by())
    by_blood_type = dict(BloodRequest.objects.values_list('blood_type').annotate(count=Count('id')).order_by())
    return {
        'total_requests': sum(by_status.values()),
        'pending_requests': by_status.get(REQUEST_PENDING, 0),
        'approved_requests': by_status.get(REQUEST_APPROVED, 0),
        'by_status': {s: by_status.get(s, 0) for s in REQUEST_STATUS_VALUES},
        'by_urgency': {u: by_urgency.get(u, 0) for u in URGENCY_VALUES},
        'by_blood_type': {b: by_blood_type.get(b, 0) for b in BLOOD_TYPE_VALUES},
    }
