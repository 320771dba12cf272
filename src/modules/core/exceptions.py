"""API-wide exception handling.

DRF only converts its own ``APIException`` family into responses; any
other exception escaping a view would surface as Django's 500 page.
``api_exception_handler`` closes that gap with a fixed JSON body so
internal failures never leak messages, identifiers, or stack traces.
"""

from __future__ import annotations

import structlog
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = structlog.get_logger(__name__)

GENERIC_ERROR_DETAIL = "Internal server error."


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is not None:
        return response

    view = context.get("view")
    logger.exception(
        "request_unhandled_exception",
        view=type(view).__name__ if view is not None else None,
        error_type=type(exc).__name__,
    )
    return Response(
        {"detail": GENERIC_ERROR_DETAIL},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
