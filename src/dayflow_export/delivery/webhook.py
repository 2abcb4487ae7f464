"""Webhook sender with bounded exponential-backoff retry."""

from __future__ import annotations

import json
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from urllib.parse import urlsplit

import httpx

from dayflow_export.config import WebhookSettings
from dayflow_export.security import (
    is_valid_header_name,
    is_valid_header_value,
    is_valid_webhook_url,
    redact_url,
)

logger = logging.getLogger(__name__)


class WebhookConfigError(ValueError):
    """Webhook configuration rejected before any network call."""


class InvalidWebhookURLError(WebhookConfigError):
    """URL is empty or cannot be parsed."""

    def __init__(self) -> None:
        super().__init__("Webhook URL is empty or malformed.")


class UnsafeWebhookURLError(WebhookConfigError):
    """URL uses a disallowed scheme, has no host, or embeds credentials."""

    def __init__(self) -> None:
        super().__init__(
            "Webhook URL must use http or https, include a host and carry no credentials.",
        )


class InvalidHeaderError(WebhookConfigError):
    """A custom header name or value failed validation."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Invalid webhook header: {key!r}")
        self.key = key


class DeliveryError(Exception):
    """Base class for per-attempt delivery failures recorded in results."""


class HttpStatusError(DeliveryError):
    """Endpoint answered with a non-2xx status."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


class NetworkError(DeliveryError):
    """Transport-level failure (connect, timeout, protocol)."""


class DeliveryCancelledError(DeliveryError):
    """Retries were abandoned because the caller cancelled the send."""


@dataclass(frozen=True, slots=True)
class DeliveryResult:
    """Outcome of one ``send`` call across all of its attempts."""

    success: bool
    status_code: int | None = None
    error: DeliveryError | None = None
    attempt_count: int = 1


class WebhookSender:
    """POSTs payload envelopes to the configured webhook endpoint."""

    def __init__(
        self,
        settings: WebhookSettings,
        *,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        _preflight(settings)
        self._settings = settings
        self._retry = settings.retry
        self._sleep = sleep
        headers = httpx.Headers(settings.headers)
        headers["Content-Type"] = "application/json"
        self._client = httpx.Client(
            timeout=httpx.Timeout(settings.timeout_seconds, connect=10.0),
            headers=headers,
            transport=transport,
        )

    @property
    def url(self) -> str:
        return self._settings.url

    def send(self, payload: str, *, cancel_event: threading.Event | None = None) -> DeliveryResult:
        """Deliver ``payload``, retrying failures per the retry policy.

        Delivery failures are reported in the result, never raised. Setting
        ``cancel_event`` abandons the remaining attempts.
        """

        body = json.dumps({"payload": payload, "timestamp": _iso_timestamp()})
        max_attempts = self._retry.max_attempts
        last_status: int | None = None
        last_error: DeliveryError | None = None

        for attempt in range(1, max_attempts + 1):
            try:
                response = self._client.post(self._settings.url, content=body)
            except httpx.HTTPError as exc:
                last_error = NetworkError(str(exc) or type(exc).__name__)
                logger.warning(
                    "Webhook attempt %d/%d to %s failed: %s",
                    attempt,
                    max_attempts,
                    redact_url(self._settings.url),
                    last_error,
                )
            else:
                last_status = response.status_code
                if response.is_success:
                    logger.info(
                        "Webhook delivered to %s on attempt %d (HTTP %d)",
                        redact_url(self._settings.url),
                        attempt,
                        response.status_code,
                    )
                    return DeliveryResult(
                        success=True,
                        status_code=response.status_code,
                        attempt_count=attempt,
                    )
                last_error = HttpStatusError(response.status_code)
                logger.warning(
                    "Webhook attempt %d/%d to %s returned HTTP %d",
                    attempt,
                    max_attempts,
                    redact_url(self._settings.url),
                    response.status_code,
                )

            if attempt == max_attempts:
                break
            if self._wait(self._retry.delay_for(attempt), cancel_event):
                logger.info("Webhook delivery cancelled after %d attempt(s)", attempt)
                return DeliveryResult(
                    success=False,
                    status_code=last_status,
                    error=DeliveryCancelledError(f"cancelled after {attempt} attempt(s)"),
                    attempt_count=attempt,
                )

        return DeliveryResult(
            success=False,
            status_code=last_status,
            error=last_error,
            attempt_count=max_attempts,
        )

    def _wait(self, delay: float, cancel_event: threading.Event | None) -> bool:
        """Sleep between attempts; True when cancellation was requested."""

        if cancel_event is not None:
            if delay > 0:
                return cancel_event.wait(delay)
            return cancel_event.is_set()
        if delay > 0:
            logger.debug("Retrying webhook in %.1fs", delay)
            self._sleep(delay)
        return False

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> WebhookSender:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


def _preflight(settings: WebhookSettings) -> None:
    url = settings.url
    if not url:
        raise InvalidWebhookURLError
    try:
        urlsplit(url)
    except ValueError as error:
        raise InvalidWebhookURLError from error
    try:
        httpx.URL(url)
    except httpx.InvalidURL as error:
        raise InvalidWebhookURLError from error
    if not is_valid_webhook_url(url):
        raise UnsafeWebhookURLError
    for key, value in settings.headers.items():
        if not is_valid_header_name(key) or not is_valid_header_value(value):
            raise InvalidHeaderError(key)


def _iso_timestamp() -> str:
    return datetime.now(tz=UTC).isoformat(timespec="seconds").replace("+00:00", "Z")
