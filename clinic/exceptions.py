"""
Error taxonomy and the project-wide API exception handler.

Failures fall into four kinds: not-found, validation, permission and
backend/transport.  Each kind maps to a stable ``code`` in the normalised
error body ``{'ok': False, 'error': {'code': ..., 'message': ...}}``.
"""
import logging

from django.db.models import ProtectedError
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class BackendUnavailable(exceptions.APIException):
    """The data store or storage provider could not complete a request."""
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = 'backend request failed'
    default_code = 'backend_error'


def _code_for(exc) -> str:
    if isinstance(exc, (exceptions.NotFound, Http404)):
        return 'not_found'
    if isinstance(exc, exceptions.ValidationError):
        return 'validation_error'
    if isinstance(exc, exceptions.NotAuthenticated):
        return 'not_authenticated'
    if isinstance(exc, exceptions.PermissionDenied):
        return 'permission_denied'
    if isinstance(exc, BackendUnavailable):
        return 'backend_error'
    return 'api_error'


def api_exception_handler(exc, context):
    if isinstance(exc, ProtectedError):
        return Response(
            {'ok': False, 'error': {'code': 'conflict', 'message': 'record is still referenced by other records'}},
            status=status.HTTP_409_CONFLICT,
        )
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception("unhandled API error", exc_info=exc)
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': str(exc)}}, status=500)
    # normalize response
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    return Response({'ok': False, 'error': {'code': _code_for(exc), 'message': detail}}, status=resp.status_code)
