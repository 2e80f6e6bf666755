import logging
import traceback
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status
from django.http import Http404
from django.core.exceptions import PermissionDenied, ValidationError
from django.db.utils import IntegrityError, DatabaseError
from django.conf import settings

logger = logging.getLogger('blinkspace')

GENERIC_SERVER_ERROR = "An unexpected error occurred. Please try again later."
GENERIC_STORAGE_ERROR = "The service is temporarily unavailable. Please try again later."


def custom_exception_handler(exc, context):
    """
    Custom exception handler for DRF that provides consistent error responses
    and logs exceptions for debugging.
    """
    # Imported here so the friends app can depend on this module freely
    from friends.exceptions import StorageUnavailable

    # Call REST framework's default exception handler first to get the standard response
    response = exception_handler(exc, context)

    # If response is None, DRF doesn't handle this exception by default
    if response is None:
        if isinstance(exc, Http404):
            response = Response(
                {'error': 'Not found', 'detail': str(exc)},
                status=status.HTTP_404_NOT_FOUND
            )
        elif isinstance(exc, PermissionDenied):
            response = Response(
                {'error': 'Permission denied', 'detail': str(exc)},
                status=status.HTTP_403_FORBIDDEN
            )
        elif isinstance(exc, ValidationError):
            response = Response(
                {'error': 'Validation error', 'detail': exc.message_dict if hasattr(exc, 'message_dict') else exc.messages},
                status=status.HTTP_400_BAD_REQUEST
            )
        elif isinstance(exc, IntegrityError):
            response = Response(
                {'error': 'Database integrity error', 'detail': str(exc)},
                status=status.HTTP_409_CONFLICT
            )
        elif isinstance(exc, DatabaseError):
            logger.error(
                f"Database error: {exc.__class__.__name__}: {exc}\n"
                f"Traceback: {traceback.format_exc()}"
            )
            response = Response(
                {'error': 'StorageUnavailable', 'detail': GENERIC_STORAGE_ERROR},
                status=status.HTTP_503_SERVICE_UNAVAILABLE
            )
        else:
            # Generic uncaught exception
            error_message = str(exc)

            # Log the error with traceback for server debugging
            logger.error(
                f"Uncaught exception: {exc.__class__.__name__}: {error_message}\n"
                f"Traceback: {traceback.format_exc()}"
            )

            # In production, don't expose detailed error information to the client
            if not settings.DEBUG:
                error_message = GENERIC_SERVER_ERROR

            response = Response(
                {'error': 'Server error', 'detail': error_message},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

    # For already handled exceptions, let's add consistency to the format
    else:
        data = response.data
        error_type = exc.__class__.__name__

        request = context.get('request')
        view = context.get('view')
        where = f"{request.method} {request.path}" if request is not None else "unknown request"

        if isinstance(exc, StorageUnavailable):
            # Store failures carry the driver message; keep it in the logs only
            cause = exc.__cause__
            logger.error(
                f"Storage failure in {view.__class__.__name__}: {cause!r}\n"
                f"Request: {where}"
            )
            if not settings.DEBUG:
                data = {'detail': GENERIC_STORAGE_ERROR}
        elif response.status_code >= 500:
            logger.error(f"Exception in {view.__class__.__name__}: {error_type}: {exc}\nRequest: {where}")
        else:
            logger.warning(f"Exception in {view.__class__.__name__}: {error_type}: {exc}\nRequest: {where}")

        # Format the response with consistent structure
        if isinstance(data, list):
            response.data = {'error': error_type, 'detail': data}
        elif isinstance(data, dict):
            if 'detail' in data and len(data) == 1:
                response.data = {'error': error_type, 'detail': data['detail']}
            elif not any(k in data for k in ['error', 'detail']):
                response.data = {'error': error_type, 'detail': data}
            else:
                response.data = data

    return response


def create_error_response(error_message, status_code=status.HTTP_400_BAD_REQUEST):
    """
    Helper function to create consistent error responses.

    Args:
        error_message: Error message or dict of errors
        status_code: HTTP status code

    Returns:
        Response object with consistent error format
    """
    if isinstance(error_message, dict):
        return Response({'error': True, 'detail': error_message}, status=status_code)
    else:
        return Response({'error': True, 'message': str(error_message)}, status=status_code)
