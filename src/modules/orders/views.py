"""Order API views.

Exposes the ``OrderService`` via HTTP using a DRF ViewSet.
Domain exceptions are caught and translated into the matching HTTP
status codes.  Anything else propagates to the project exception
handler, which answers 500 with a generic body.
"""

from __future__ import annotations

import structlog
from django.conf import settings
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import ViewSet

from modules.core.exceptions import GENERIC_ERROR_DETAIL
from modules.core.tracing import get_trace_fabric
from modules.orders.catalog import get_catalog_client
from modules.orders.exceptions import (
    InvalidOrderInput,
    InvalidOrderStatus,
    OrderAccessForbidden,
    OrderNotFound,
    UpstreamFailure,
)
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import CreateOrderSerializer
from modules.orders.services import OrderService

logger = structlog.get_logger(__name__)


def _error(exc: Exception) -> Response:
    """Translate a domain exception into a ``{"detail": ...}`` response."""
    if isinstance(exc, OrderNotFound):
        return Response({"detail": "Order not found."}, status=status.HTTP_404_NOT_FOUND)
    if isinstance(exc, OrderAccessForbidden):
        return Response({"detail": str(exc)}, status=status.HTTP_403_FORBIDDEN)
    if isinstance(exc, (InvalidOrderStatus, InvalidOrderInput)):
        return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    # UpstreamFailure: the message names internal ids, keep it server-side.
    return Response(
        {"detail": GENERIC_ERROR_DETAIL},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


DOMAIN_ERRORS = (
    OrderNotFound,
    OrderAccessForbidden,
    InvalidOrderStatus,
    InvalidOrderInput,
    UpstreamFailure,
)


class OrderViewSet(ViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected collaborators (DIP).
    Does **not** extend ``ModelViewSet``; all ORM access goes through
    the service/repository layer.  The acting caller is always
    ``request.user.id`` and the parent trace context is extracted from
    the incoming request headers.
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._tracing = get_trace_fabric()
        self._service = OrderService(
            order_repository=OrderDjangoRepository(),
            catalog_client=get_catalog_client(),
            tracing=self._tracing,
            max_lookup_workers=settings.CATALOG_MAX_WORKERS,
        )

    def _trace_context(self, request: Request):
        return self._tracing.extract(request.headers)

    @staticmethod
    def _actor_id(request: Request) -> str:
        return str(request.user.id)

    # ------------------------------------------------------------------
    # List / Create
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/orders

        Orders placed by the caller, newest first.
        """
        try:
            views = self._service.list_orders(
                self._actor_id(request), self._trace_context(request)
            )
        except DOMAIN_ERRORS as exc:
            return _error(exc)
        return Response([view.model_dump(mode="json") for view in views])

    def create(self, request: Request) -> Response:
        """POST /api/orders"""
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order_id = self._service.create_order(
                owner_id=self._actor_id(request),
                items=serializer.validated_data["items"],
                trace_context=self._trace_context(request),
            )
        except DOMAIN_ERRORS as exc:
            return _error(exc)
        return Response({"id": str(order_id)}, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # Retrieve / Destroy
    # ------------------------------------------------------------------

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/orders/{pk}"""
        try:
            view = self._service.get_order(pk, self._trace_context(request))
        except DOMAIN_ERRORS as exc:
            return _error(exc)
        return Response(view.model_dump(mode="json"))

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/orders/{pk}

        Only the owner may delete, and only once the order is cancelled.
        """
        try:
            self._service.delete_order(
                pk, self._actor_id(request), self._trace_context(request)
            )
        except DOMAIN_ERRORS as exc:
            return _error(exc)
        return Response({"detail": "Ok"})

    # ------------------------------------------------------------------
    # Lifecycle actions
    # ------------------------------------------------------------------

    @action(detail=True, methods=["put"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/orders/{pk}/cancel"""
        try:
            self._service.cancel_order(
                pk, self._actor_id(request), self._trace_context(request)
            )
        except DOMAIN_ERRORS as exc:
            return _error(exc)
        return Response({"detail": "Ok"})

    @action(
        detail=True,
        methods=["post"],
        url_path=r"status/(?P<target_status>[^/.]+)",
        url_name="status",
    )
    def update_status(
        self, request: Request, pk: str | None = None, target_status: str = ""
    ) -> Response:
        """POST /api/orders/{pk}/status/{target_status}

        Forward moves only (``PENDING -> SHIPPED -> DELIVERED``); use
        the cancel endpoint for cancellations.
        """
        try:
            self._service.update_status(
                pk,
                self._actor_id(request),
                target_status,
                self._trace_context(request),
            )
        except DOMAIN_ERRORS as exc:
            return _error(exc)
        return Response({"detail": "Ok"})
