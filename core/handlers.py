# core/handlers.py
import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .exceptions import EligibilityError, UnexpectedError

logger = logging.getLogger(__name__)


def api_exception_handler(exc, context):
    """
    DRF exception handler: database and unhandled errors become a logged 500,
    eligibility refusals also carry `wait_days_remaining`.
    """
    view = context.get('view')
    view_name = view.__class__.__name__ if view else 'unknown view'

    if isinstance(exc, DatabaseError):
        logger.exception("Database error in %s", view_name)
        exc = UnexpectedError()

    response = exception_handler(exc, context)

    if response is None:
        logger.exception("Unhandled error in %s", view_name)
        return Response({'detail': UnexpectedError.default_detail}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if isinstance(exc, EligibilityError):
        response.data['wait_days_remaining'] = exc.wait_days_remaining

    return response
