"""
Service-layer error taxonomy.

Services raise these; views turn them into JSON responses with
``error_response``. None of them is transient, so nothing here is retried.
"""
import logging

from rest_framework import status
from rest_framework.response import Response

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base class for rejections raised by the service layer."""
    kind = 'Error'
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str, **extra):
        self.detail = detail
        self.extra = extra
        super().__init__(detail)


class ServiceValidationError(ServiceError):
    """Missing or malformed input, rejected before any state change."""
    kind = 'Validation Error'
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(ServiceError):
    """A referenced product, line, serial or slab does not exist."""
    kind = 'Not Found'
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ServiceError):
    """The resource is already consumed, allocated or replaced."""
    kind = 'Conflict'
    status_code = status.HTTP_409_CONFLICT


class InconsistencyError(ServiceError):
    """The caller's view of eligibility disagrees with the server's."""
    kind = 'Inconsistency'
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


def error_response(exc: ServiceError) -> Response:
    """Render a ServiceError the same way for every endpoint."""
    logger.warning(f"{exc.kind}: {exc.detail}")
    body = {'error': exc.kind, 'detail': exc.detail}
    body.update(exc.extra)
    return Response(body, status=exc.status_code)


def server_error_response(message: str) -> Response:
    return Response(
        {'error': 'Server Error', 'detail': message},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR
    )
