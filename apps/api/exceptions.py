"""
Custom exception handlers for API.
"""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from apps.core.exceptions import StorageFailure

logger = logging.getLogger(__name__)


def custom_exception_handler(exc, context):
    """
    Custom exception handler for DRF.
    Logs errors and provides consistent error responses.
    """
    # Call REST framework's default exception handler first
    response = exception_handler(exc, context)

    if isinstance(exc, StorageFailure):
        logger.error(f"API storage failure: {exc}")
        return Response(
            {'error': 'Storage unavailable', 'code': status.HTTP_503_SERVICE_UNAVAILABLE},
            status=status.HTTP_503_SERVICE_UNAVAILABLE
        )

    # If DRF didn't handle it, create custom response
    if response is None:
        logger.error(f"API Exception: {exc}", exc_info=True)
        request = context.get('request')
        is_staff = bool(request and getattr(request.user, 'is_staff', False))
        return Response(
            {
                'error': 'Internal server error',
                'detail': str(exc) if is_staff else 'An error occurred'
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    logger.warning(f"API error {response.status_code}: {exc}")

    # Customize error response format
    if isinstance(response.data, dict):
        response.data = {
            'error': response.data.get('detail', 'Error'),
            'code': response.status_code
        }

    return response
