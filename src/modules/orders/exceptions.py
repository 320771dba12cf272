"""Order domain exceptions.

Raised by the lifecycle and service layers when business rules are
violated.  The API layer (Views) catches these and translates them into
the matching HTTP responses:

- ``OrderNotFound`` -> 404
- ``OrderAccessForbidden`` -> 403
- ``InvalidOrderStatus`` / ``InvalidOrderInput`` -> 400
- ``UpstreamFailure`` -> 500
"""

from __future__ import annotations


class OrderError(Exception):
    """Base class for every order domain error."""


class OrderNotFound(OrderError):
    """The requested order does not exist."""


class OrderAccessForbidden(OrderError):
    """The acting caller does not own the order."""


class InvalidOrderStatus(OrderError):
    """A lifecycle rule was violated (e.g. cancelling a shipped order)."""


class InvalidOrderInput(OrderError):
    """The request is malformed (e.g. an order without items)."""


class UpstreamFailure(OrderError):
    """A catalog lookup failed while building the order view."""


class AggregationError(OrderError):
    """One line item could not be resolved against the catalog.

    ``item_id`` is the first item whose lookup failed and ``cause`` the
    underlying catalog error.
    """

    def __init__(self, item_id: int, cause: BaseException) -> None:
        super().__init__(f"Catalog lookup failed for item {item_id}: {cause}")
        self.item_id = item_id
        self.cause = cause


# Rule violations produced locally; these are not span-level errors.
BUSINESS_ERRORS = (
    OrderNotFound,
    OrderAccessForbidden,
    InvalidOrderStatus,
    InvalidOrderInput,
)
