"""Integration tests for the Celery configuration and scheduled order jobs."""

import logging
from datetime import timedelta

import pytest
from django.utils import timezone

from modules.orders.constants import CancellationDecision
from modules.orders.models import CancellationRequest

pytestmark = pytest.mark.integration


@pytest.fixture(autouse=True)
def _celery_eager(settings):
    """Run tasks synchronously in the test process."""
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CELERY_TASK_EAGER_PROPAGATES = True


class TestCeleryConfig:
    def test_celery_app_exported_from_init(self):
        from config import celery_app

        assert celery_app.main == "foodorder"

    def test_celery_serializer_is_json(self, settings):
        assert settings.CELERY_TASK_SERIALIZER == "json"
        assert settings.CELERY_ACCEPT_CONTENT == ["json"]

    def test_beat_schedules_order_jobs(self, settings):
        tasks = {entry["task"] for entry in settings.CELERY_BEAT_SCHEDULE.values()}
        assert tasks == {
            "core.publish_outbox_events",
            "orders.report_overdue_cancellation_requests",
        }


class TestOverdueCancellationReport:
    def _age_request(self, order, minutes):
        CancellationRequest.objects.filter(order=order).update(
            requested_at=timezone.now() - timedelta(minutes=minutes)
        )

    def test_counts_requests_past_the_sla(self, make_order, settings):
        from modules.orders.tasks import report_overdue_cancellation_requests

        settings.CANCELLATION_REQUEST_SLA_MINUTES = 30
        overdue = make_order(request=CancellationDecision.PENDING)
        fresh = make_order(request=CancellationDecision.PENDING)
        decided = make_order(request=CancellationDecision.REJECTED)
        self._age_request(overdue, 45)
        self._age_request(fresh, 5)
        self._age_request(decided, 120)

        result = report_overdue_cancellation_requests.delay()

        assert result.successful()
        assert result.result == 1

    def test_logs_a_warning_when_overdue(self, make_order, caplog):
        from modules.orders.tasks import report_overdue_cancellation_requests

        order = make_order(request=CancellationDecision.PENDING)
        self._age_request(order, 90)

        with caplog.at_level(logging.WARNING, logger="modules.orders.tasks"):
            count = report_overdue_cancellation_requests(sla_minutes=60)

        assert count == 1
        assert any(
            "cancellation.requests_overdue" in record.getMessage()
            for record in caplog.records
        )

    def test_never_decides_requests(self, make_order):
        from modules.orders.tasks import report_overdue_cancellation_requests

        order = make_order(request=CancellationDecision.PENDING)
        self._age_request(order, 600)

        report_overdue_cancellation_requests()

        order.refresh_from_db()
        assert order.cancellation_request.is_pending
