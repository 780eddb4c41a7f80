"""
API error types and the unified exception handler.

Every error leaves the API as ``{"ok": false, "error": {"code", "message"}}``.
Unexpected exceptions are logged with their traceback and reported to the
caller as a generic server error without internal detail.
"""
import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class Gone(APIException):
    """The capability existed but can no longer be used (expired or consumed)."""
    status_code = status.HTTP_410_GONE
    default_detail = 'Token is no longer valid.'
    default_code = 'gone'


class NothingToShare(APIException):
    """A share token with neither a user nor a record scope."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Nothing to share.'
    default_code = 'bad_request'


class AccessLogWriteError(APIException):
    """The emergency access audit entry could not be persisted."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Server error.'
    default_code = 'server_error'


def api_exception_handler(exc, context):
    if isinstance(exc, Http404):
        exc = exceptions.NotFound(*(exc.args or ('Not found.',)))
    elif isinstance(exc, DjangoPermissionDenied):
        exc = exceptions.PermissionDenied(*exc.args)
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('unhandled error: %s', type(exc).__name__)
        return Response(
            {'ok': False, 'error': {'code': 'server_error', 'message': 'Server error.'}},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    # normalize response
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    code = getattr(exc, 'default_code', None) or 'api_error'
    headers = {k: v for k, v in resp.items() if k in ('WWW-Authenticate', 'Retry-After')}
    return Response({'ok': False, 'error': {'code': code, 'message': detail}}, status=resp.status_code, headers=headers)
