import logging

import pytest

pytestmark = pytest.mark.integration


class TestRequestContext:
    def test_request_id_echoed_on_api_responses(self, api_client_with_correlation):
        api_client, cid = api_client_with_correlation
        response = api_client.get("/api/orders")
        assert response.status_code == 401
        assert response["X-Request-ID"] == cid

    def test_traceparent_bound_into_logs(self, client, caplog):
        traceparent = "00-4bf92f3577b34da6a3ce929d0e0e4736-00f067aa0ba902b7-01"
        with caplog.at_level(logging.INFO):
            client.get("/health", HTTP_TRACEPARENT=traceparent)
        assert any(traceparent in record.getMessage() for record in caplog.records)

    def test_actor_id_bound_into_logs(self, monkeypatch, catalog, tracing, api_client, caplog):
        monkeypatch.setattr("modules.orders.views.get_catalog_client", lambda: catalog)
        monkeypatch.setattr("modules.orders.views.get_trace_fabric", lambda: tracing)
        api_client.credentials(HTTP_X_USER_ID="actor-789")

        with caplog.at_level(logging.INFO):
            api_client.get("/api/orders")

        finished = [
            record for record in caplog.records
            if "request_finished" in record.getMessage()
        ]
        assert finished
        assert "actor-789" in finished[-1].getMessage()
