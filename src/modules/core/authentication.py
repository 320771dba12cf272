"""Upstream-identity authentication backend for Django REST Framework.

Caller authentication happens in front of this service (API gateway /
user service).  The gateway forwards the resolved caller id in a trusted
header (``IDENTITY_HEADER``, default ``X-User-Id``); this backend only
turns that header into ``request.user``.  The id is **not** re-validated.

Security decisions
------------------
* **Fail Closed** - a missing or blank header yields no user, so the
  default ``IsAuthenticated`` permission answers 401.
* Ids longer than ``MAX_IDENTITY_LENGTH`` are rejected with 401.
* The header must only be reachable through the gateway; never expose
  this service directly to clients.
"""

from __future__ import annotations

import structlog
from django.conf import settings
from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed

logger = structlog.get_logger(__name__)

# Matches the width of ``Order.owner_id``.
MAX_IDENTITY_LENGTH = 64


class UpstreamUser:
    """Lightweight user object for a caller resolved upstream.

    There is no local ``User`` row; views read ``request.user.id``
    to make ownership decisions.
    """

    # DRF checks
    is_authenticated = True
    is_active = True

    def __init__(self, user_id: str) -> None:
        self.id = user_id
        self.pk = user_id

    def __str__(self) -> str:  # pragma: no cover
        return self.id


class UpstreamIdentityAuthentication(BaseAuthentication):
    """DRF authentication class reading the gateway identity header."""

    @staticmethod
    def _meta_key() -> str:
        return "HTTP_" + settings.IDENTITY_HEADER.upper().replace("-", "_")

    def authenticate(self, request):
        """Return ``(UpstreamUser, None)`` or ``None`` (no identity)."""
        user_id = request.META.get(self._meta_key(), "").strip()
        if not user_id:
            return None
        if len(user_id) > MAX_IDENTITY_LENGTH:
            logger.warning("identity_rejected", reason="too_long", length=len(user_id))
            raise AuthenticationFailed("Caller identity is too long.")

        structlog.contextvars.bind_contextvars(actor_id=user_id)
        logger.debug("identity_resolved", actor_id=user_id)
        return (UpstreamUser(user_id), None)

    def authenticate_header(self, request):
        """Value for the ``WWW-Authenticate`` response header on 401."""
        return f'{settings.IDENTITY_HEADER} realm="api"'
