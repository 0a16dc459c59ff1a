"""Scheduled jobs of the orders module."""

from datetime import timedelta

import structlog
from celery import shared_task
from django.conf import settings
from django.utils import timezone

from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import CancellationService

logger = structlog.get_logger(__name__)


@shared_task(name="orders.report_overdue_cancellation_requests")
def report_overdue_cancellation_requests(sla_minutes=None):
    """Warn when cancellation requests wait longer than the triage SLA.

    Read-only: it never decides a request.
    """
    minutes = sla_minutes or settings.CANCELLATION_REQUEST_SLA_MINUTES
    cutoff = timezone.now() - timedelta(minutes=minutes)
    service = CancellationService(order_repository=OrderDjangoRepository())

    overdue = service.count_overdue(cutoff)
    if overdue:
        logger.warning(
            "cancellation.requests_overdue", count=overdue, sla_minutes=minutes
        )
    else:
        logger.info("cancellation.requests_within_sla", sla_minutes=minutes)
    return overdue
