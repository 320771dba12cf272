from __future__ import annotations

import pytest
from django.test import override_settings
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.test import APIRequestFactory

from modules.core.authentication import (
    MAX_IDENTITY_LENGTH,
    UpstreamIdentityAuthentication,
    UpstreamUser,
)

pytestmark = pytest.mark.unit


@pytest.fixture()
def factory():
    return APIRequestFactory()


class TestUpstreamIdentityAuthentication:
    def test_resolves_user_from_header(self, factory):
        request = factory.get("/api/orders", HTTP_X_USER_ID="U1")

        user, auth = UpstreamIdentityAuthentication().authenticate(request)

        assert isinstance(user, UpstreamUser)
        assert user.id == "U1"
        assert user.is_authenticated
        assert auth is None

    def test_missing_header_is_anonymous(self, factory):
        request = factory.get("/api/orders")
        assert UpstreamIdentityAuthentication().authenticate(request) is None

    def test_blank_header_is_anonymous(self, factory):
        request = factory.get("/api/orders", HTTP_X_USER_ID="  ")
        assert UpstreamIdentityAuthentication().authenticate(request) is None

    def test_identity_at_column_width_accepted(self, factory):
        request = factory.get("/api/orders", HTTP_X_USER_ID="u" * MAX_IDENTITY_LENGTH)

        user, _ = UpstreamIdentityAuthentication().authenticate(request)

        assert len(user.id) == MAX_IDENTITY_LENGTH

    def test_overlong_identity_rejected(self, factory):
        request = factory.get("/api/orders", HTTP_X_USER_ID="u" * (MAX_IDENTITY_LENGTH + 1))

        with pytest.raises(AuthenticationFailed):
            UpstreamIdentityAuthentication().authenticate(request)

    @override_settings(IDENTITY_HEADER="X-Forwarded-User")
    def test_header_name_is_configurable(self, factory):
        request = factory.get("/api/orders", HTTP_X_FORWARDED_USER="U9")

        user, _ = UpstreamIdentityAuthentication().authenticate(request)

        assert user.id == "U9"

    def test_challenge_names_the_header(self, factory):
        request = factory.get("/api/orders")
        challenge = UpstreamIdentityAuthentication().authenticate_header(request)
        assert challenge == 'X-User-Id realm="api"'
