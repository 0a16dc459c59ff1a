import logging
import uuid

import pytest

pytestmark = pytest.mark.integration


class TestCorrelationIdMiddleware:
    def test_returns_provided_request_id(self, api_client_with_correlation):
        client, cid = api_client_with_correlation
        response = client.get("/health")
        assert response["X-Request-ID"] == cid

    def test_generates_uuid_when_no_request_id(self, client):
        response = client.get("/health")
        request_id = response["X-Request-ID"]
        parsed = uuid.UUID(request_id, version=4)
        assert str(parsed) == request_id

    def test_error_responses_carry_request_id(self, api_client):
        response = api_client.get(
            "/api/order/cancellation-requests", HTTP_X_REQUEST_ID="trace-401"
        )
        assert response.status_code == 401
        assert response["X-Request-ID"] == "trace-401"

    def test_correlation_id_in_service_logs(self, admin_client, make_order, caplog):
        order = make_order()
        custom_id = "status-change-correlation-456"

        with caplog.at_level(logging.INFO):
            admin_client.post(
                "/api/order/status",
                {"orderId": str(order.id), "status": "Your food is prepared"},
                format="json",
                HTTP_X_REQUEST_ID=custom_id,
            )

        service_records = [
            record.getMessage()
            for record in caplog.records
            if "order.status_updated" in record.getMessage()
        ]
        assert service_records, [r.getMessage() for r in caplog.records]
        assert custom_id in service_records[0]
