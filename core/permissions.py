# core/permissions.py
from rest_framework import permissions

from .exceptions import AuthorizationError
from .models import ROLE_ADMIN, ROLE_DONOR, ROLE_PATIENT


def authorize(account, *roles):
    """
    Fail-closed gate used by every workflow operation.

    True only for an authenticated, active account whose role is one of
    `roles` (any role when none are given). There is no elevation between
    roles: Django's is_staff/is_superuser flags are not consulted.
    """
    if account is None or not getattr(account, 'is_authenticated', False):
        return False
    if not account.is_active:
        return False
    if roles and account.role not in roles:
        return False
    return True


def require_role(account, *roles):
    if not authorize(account, *roles):
        raise AuthorizationError()
    return account


class IsActiveAccount(permissions.BasePermission):
    roles = ()

    def has_permission(self, request, view):
        return authorize(request.user, *self.roles)


class IsDonor(IsActiveAccount):
    roles = (ROLE_DONOR,)


class IsPatient(IsActiveAccount):
    roles = (ROLE_PATIENT,)


class IsAdminRole(IsActiveAccount):
    roles = (ROLE_ADMIN,)


class IsRequester(IsActiveAccount):
    """Donors and patients both raise blood requests as themselves."""
    roles = (ROLE_DONOR, ROLE_PATIENT)
