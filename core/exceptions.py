# core/exceptions.py
"""
Errors raised by the request/donation workflows.

All of them are DRF ``APIException`` subclasses, so a view can let them
propagate and DRF renders the right status code. ``ValidationError`` is DRF's
own class and carries field-level detail.
"""

from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError


__all__ = [
    'ValidationError',
    'AuthorizationError',
    'InvalidStateError',
    'EligibilityError',
    'NotFoundError',
    'UnexpectedError',
]


class AuthorizationError(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You are not allowed to perform this action.'
    default_code = 'forbidden'


class InvalidStateError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'The record is not in a state that allows this action.'
    default_code = 'invalid_state'


class EligibilityError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'not_eligible'

    def __init__(self, wait_days_remaining):
        self.wait_days_remaining = wait_days_remaining
        super().__init__(
            f"You must wait at least 56 days between donations. "
            f"You can donate again in {wait_days_remaining} days."
        )


class NotFoundError(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class UnexpectedError(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Server error'
    default_code = 'server_error'
