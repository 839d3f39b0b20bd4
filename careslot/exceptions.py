import logging
from functools import wraps

from django.db import OperationalError
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────
# Scheduling error taxonomy
# ─────────────────────────────────────────────

class SchedulingError(APIException):
    """Base for every expected, operational failure raised by the scheduling engine."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'The scheduling request could not be completed.'
    default_code = 'scheduling_error'


class Conflict(SchedulingError):
    """The slot or time window was already consumed. Retry with another one."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'This time slot is no longer available.'
    default_code = 'conflict'


class InvalidTransition(SchedulingError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'This action is not allowed in the current appointment status.'
    default_code = 'invalid_transition'


class NotFound(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class NotEligible(SchedulingError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'This appointment is not eligible for the requested action.'
    default_code = 'not_eligible'


class Unavailable(SchedulingError):
    """Transient store or transport failure. Safe to retry with backoff."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'The service is temporarily unavailable. Please retry shortly.'
    default_code = 'unavailable'


def store_call(func):
    """
    Map store timeouts and dropped connections raised by `func` to `Unavailable`.
    Wrap the outermost engine entry point so the transaction has already been
    rolled back when the error surfaces.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except OperationalError as exc:
            logger.warning('Store call %s failed: %s', func.__qualname__, exc)
            raise Unavailable() from exc
    return wrapper


# ─────────────────────────────────────────────
# DRF exception handler
# ─────────────────────────────────────────────

def exception_handler(exc, context):
    """
    Render scheduling errors as {"message", "code"} like the rest of the API,
    and turn anything DRF does not know into a logged, generic 500.
    """
    response = drf_exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        request = context.get('request')
        logger.error(
            'Unhandled error in %s (%s %s)',
            view.__class__.__name__ if view else 'unknown view',
            getattr(request, 'method', '-'),
            getattr(request, 'path', '-'),
            exc_info=exc,
        )
        return Response(
            {'message': 'Something went wrong. Please try again later.', 'code': 'internal_error'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, SchedulingError):
        response.data = {'message': str(exc.detail), 'code': exc.get_codes()}
    return response
