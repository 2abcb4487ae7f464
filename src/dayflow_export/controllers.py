"""Controllers for dayflow-export CLI commands."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from dayflow_export.cards.models import load_cards
from dayflow_export.cards.validator import review_cards
from dayflow_export.config import Settings
from dayflow_export.delivery.queue import BatchQueue
from dayflow_export.delivery.service import DeliveryService
from dayflow_export.delivery.webhook import DeliveryResult, WebhookSender
from dayflow_export.security import redact_url


@dataclass(slots=True)
class CardsValidateCommand:
    """CLI inputs for card validation."""

    config_path: Path | None
    existing_path: Path
    proposed_path: Path
    deliver: bool


@dataclass(slots=True)
class QueueCommand:
    """CLI inputs shared by queue inspection commands."""

    config_path: Path | None
    queue_dir: Path | None = None


@dataclass(slots=True)
class WebhookSendCommand:
    """CLI inputs for a one-off webhook send."""

    config_path: Path | None
    payload: str
    queue_on_failure: bool = True


@dataclass(slots=True)
class CommandOutcome:
    """Printable lines plus overall status for commands that can fail."""

    success: bool
    lines: list[str] = field(default_factory=list)


class ExportCliController:
    """Wires settings, queue and sender for each CLI command."""

    def validate_cards(self, command: CardsValidateCommand) -> CommandOutcome:
        existing = load_cards(command.existing_path)
        proposed = load_cards(command.proposed_path)
        verdict = review_cards(existing, proposed)
        if not verdict.is_valid:
            return CommandOutcome(
                success=False,
                lines=["Cards rejected.", verdict.error or ""],
            )

        lines = [f"Cards accepted: {len(proposed)} card(s) cover {len(existing)} input card(s)."]
        if not command.deliver:
            return CommandOutcome(success=True, lines=lines)

        settings = _load_settings(command.config_path, require_webhook=True)
        with _delivery_service(settings) as service:
            results = service.publish_cards(proposed)
        lines.extend(_result_lines(results, settings))
        return CommandOutcome(success=True, lines=lines)

    def queue_stats(self, command: QueueCommand) -> list[str]:
        queue = self._queue(command)
        return [
            f"Queue directory: {queue.directory}",
            f"Pending payloads: {queue.count}",
        ]

    def queue_peek(self, command: QueueCommand) -> list[str]:
        payloads = self._queue(command).peek()
        if not payloads:
            return ["Queue is empty."]
        lines = [f"{len(payloads)} pending payload(s):"]
        for index, payload in enumerate(payloads, start=1):
            preview = payload if len(payload) <= 120 else f"{payload[:117]}..."  # noqa: PLR2004
            lines.append(f"  {index}. {preview}")
        return lines

    def queue_clear(self, command: QueueCommand) -> list[str]:
        removed = self._queue(command).clear()
        return [f"Removed {removed} pending payload(s)."]

    def queue_flush(self, command: QueueCommand) -> CommandOutcome:
        settings = _load_settings(command.config_path, require_webhook=True)
        if command.queue_dir is not None:
            settings.queue.directory = command.queue_dir
        with _delivery_service(settings) as service:
            report = service.flush()
        lines = []
        if report.recovered_claims:
            lines.append(f"Recovered stale claims: {report.recovered_claims}")
        lines.append(f"Delivered: {report.delivered}")
        lines.append(f"Requeued: {report.requeued}")
        return CommandOutcome(success=report.requeued == 0, lines=lines)

    def webhook_send(self, command: WebhookSendCommand) -> CommandOutcome:
        settings = _load_settings(command.config_path, require_webhook=True)
        if command.queue_on_failure:
            with _delivery_service(settings) as service:
                result = service.deliver(command.payload)
        else:
            with WebhookSender(settings.webhook) as sender:
                result = sender.send(command.payload)
        lines = _result_lines([result], settings)
        if not result.success and command.queue_on_failure:
            lines.append("Payload queued for the next flush.")
        return CommandOutcome(success=result.success, lines=lines)

    def _queue(self, command: QueueCommand) -> BatchQueue:
        if command.queue_dir is not None:
            return BatchQueue(command.queue_dir)
        settings = _load_settings(command.config_path, require_webhook=False)
        return BatchQueue(settings.queue_dir)


def _load_settings(config_path: Path | None, *, require_webhook: bool) -> Settings:
    settings = Settings.load(config_path)
    if require_webhook:
        settings.validate_for_delivery()
    return settings


@contextmanager
def _delivery_service(settings: Settings) -> Iterator[DeliveryService]:
    with WebhookSender(settings.webhook) as sender:
        yield DeliveryService(
            sender=sender,
            queue=BatchQueue(settings.queue_dir),
            settings=settings,
        )


def _result_lines(results: list[DeliveryResult], settings: Settings) -> list[str]:
    target = redact_url(settings.webhook.url)
    lines: list[str] = []
    for result in results:
        if result.success:
            lines.append(
                f"Delivered to {target} (HTTP {result.status_code}, "
                f"attempts={result.attempt_count}).",
            )
        else:
            lines.append(
                f"Delivery to {target} failed after {result.attempt_count} attempt(s): "
                f"{result.error}.",
            )
    return lines
