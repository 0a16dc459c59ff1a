"""Asynchronous tasks of the core module."""

import structlog
from celery import shared_task
from django.conf import settings
from django.db import transaction

from modules.core.models import OutboxEvent
from shared.domain.events import event_from_payload
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)

MAX_DELIVERY_ATTEMPTS = 5


@shared_task(name="core.publish_outbox_events")
def publish_outbox_events(batch_size=None):
    """Deliver pending outbox events to the in-process event bus.

    Events are read in creation order and locked with ``skip_locked`` so two
    workers never deliver the same row.  A handler failure marks only that
    event as failed; it is retried on a later run until it runs out of
    attempts.
    """
    limit = batch_size or settings.OUTBOX_BATCH_SIZE
    published = failed = 0

    with transaction.atomic():
        events = list(
            OutboxEvent.objects.publishable(MAX_DELIVERY_ATTEMPTS)
            .select_for_update(skip_locked=True)[:limit]
        )
        for outbox in events:
            log = logger.bind(
                outbox_id=str(outbox.id),
                event_type=outbox.event_type,
                aggregate_id=outbox.aggregate_id,
            )
            try:
                event_bus.publish(event_from_payload(outbox.event_type, outbox.payload))
            except Exception as exc:
                outbox.mark_as_failed(str(exc))
                failed += 1
                log.warning("outbox.delivery_failed", error=str(exc))
                continue
            outbox.mark_as_published()
            published += 1

    logger.info("outbox.batch_processed", published=published, failed=failed)
    return {"published": published, "failed": failed}
