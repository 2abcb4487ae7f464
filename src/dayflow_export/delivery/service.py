"""Deliver-or-enqueue orchestration over the sender and persistent queue."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from dayflow_export.cards.models import ActivityCard, cards_to_json
from dayflow_export.config import Settings
from dayflow_export.delivery.markdown import format_cards_markdown
from dayflow_export.delivery.queue import BatchQueue
from dayflow_export.delivery.webhook import DeliveryResult, WebhookSender

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FlushReport:
    """Counters for one flush cycle."""

    delivered: int = 0
    requeued: int = 0
    recovered_claims: int = 0
    results: list[DeliveryResult] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.delivered + self.requeued


class DeliveryService:
    """Sends payloads now and parks failures in the queue for a later flush.

    Payloads whose retries are exhausted are re-enqueued, so a payload is
    never dropped by this service.
    """

    def __init__(
        self,
        *,
        sender: WebhookSender,
        queue: BatchQueue,
        settings: Settings,
    ) -> None:
        self.sender = sender
        self.queue = queue
        self.settings = settings

    def deliver(self, payload: str) -> DeliveryResult:
        result = self.sender.send(payload)
        if not result.success:
            path = self.queue.enqueue(payload)
            logger.warning(
                "Delivery failed after %d attempt(s) (%s); queued as %s",
                result.attempt_count,
                result.error,
                path.name,
            )
        return result

    def publish_cards(self, cards: Sequence[ActivityCard]) -> list[DeliveryResult]:
        """Deliver accepted cards in every enabled payload format."""

        payloads: list[str] = []
        if self.settings.webhook.send_json:
            payloads.append(cards_to_json(list(cards)))
        if self.settings.webhook.send_markdown:
            payloads.append(format_cards_markdown(cards))
        return [self.deliver(payload) for payload in payloads]

    def flush(self) -> FlushReport:
        """Resend every queued payload; failures go back into the queue."""

        report = FlushReport(
            recovered_claims=self.queue.recover_stale_claims(
                self.settings.queue.stale_claim_seconds,
            ),
        )
        payloads = self.queue.dequeue_all()
        handled = 0
        try:
            for payload in payloads:
                result = self.sender.send(payload)
                report.results.append(result)
                if result.success:
                    report.delivered += 1
                else:
                    self.queue.enqueue(payload)
                    report.requeued += 1
                handled += 1
        finally:
            # Claimed files are already deleted; put back whatever was not handled.
            unhandled = payloads[handled:]
            if unhandled:
                logger.warning("Flush interrupted; requeueing %d payload(s)", len(unhandled))
                for payload in unhandled:
                    self.queue.enqueue(payload)

        if report.attempted:
            logger.info(
                "Queue flush finished: %d delivered, %d requeued",
                report.delivered,
                report.requeued,
            )
        return report
