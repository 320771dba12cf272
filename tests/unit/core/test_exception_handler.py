from __future__ import annotations

import pytest
from rest_framework.exceptions import NotFound

from modules.core.exceptions import GENERIC_ERROR_DETAIL, api_exception_handler

pytestmark = pytest.mark.unit


class TestApiExceptionHandler:
    def test_drf_exceptions_keep_their_response(self):
        response = api_exception_handler(NotFound("nope"), {})
        assert response.status_code == 404
        assert response.data == {"detail": "nope"}

    def test_unexpected_exception_is_generic_500(self):
        response = api_exception_handler(RuntimeError("secret internals"), {"view": object()})
        assert response.status_code == 500
        assert response.data == {"detail": GENERIC_ERROR_DETAIL}
        assert "secret" not in str(response.data)
