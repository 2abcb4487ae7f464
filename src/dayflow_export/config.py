"""Runtime configuration for validation and webhook delivery."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from dayflow_export.security import (
    is_valid_header_name,
    is_valid_header_value,
    is_valid_webhook_url,
)

DEFAULT_CONFIG_PATH = Path("~/.dayflow/config.json")
DEFAULT_QUEUE_DIR = Path("~/.dayflow/queue")


class ConfigError(ValueError):
    """Raised for missing, malformed or unsafe configuration."""


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Exponential backoff policy for webhook delivery."""

    initial_delay_seconds: float = 5.0
    max_delay_seconds: float = 300.0
    multiplier: int = 2
    max_attempts: int = 10

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after failed ``attempt`` (1-based) before the next one."""

        return min(
            self.initial_delay_seconds * self.multiplier ** (attempt - 1),
            self.max_delay_seconds,
        )

    def validate(self) -> None:
        if self.max_attempts < 1:
            raise ConfigError("retryStrategy.maxAttempts must be >= 1.")
        if self.initial_delay_seconds < 0 or self.max_delay_seconds < 0:
            raise ConfigError("retryStrategy delays must be >= 0.")
        if self.multiplier < 1:
            raise ConfigError("retryStrategy.multiplier must be >= 1.")


@dataclass(slots=True)
class WebhookSettings:
    """Outbound webhook endpoint settings."""

    url: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    send_json: bool = True
    send_markdown: bool = True
    timeout_seconds: float = 30.0


@dataclass(slots=True)
class QueueSettings:
    """Persistent delivery queue settings."""

    directory: Path = DEFAULT_QUEUE_DIR
    stale_claim_seconds: float = 3_600.0


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    webhook: WebhookSettings = field(default_factory=WebhookSettings)
    queue: QueueSettings = field(default_factory=QueueSettings)

    @classmethod
    def load(cls, config_path: Path | None = None) -> Settings:
        """Load ``config.json`` (when present) and apply ``DAYFLOW_*`` env overrides.

        An explicitly given path must exist; the default path is optional.
        """

        path = config_path or Path(os.getenv("DAYFLOW_CONFIG_PATH", str(DEFAULT_CONFIG_PATH)))
        path = path.expanduser()
        raw: dict[str, Any] = {}
        if path.exists():
            raw = _read_json(path)
        elif config_path is not None:
            raise ConfigError(f"Config file not found: {path}")

        settings = cls.from_dict(raw)
        return settings.with_env_overrides()

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Settings:
        """Build settings from the camelCase ``config.json`` structure."""

        webhook_raw = _section(raw, "webhook")
        retry_raw = _section(webhook_raw, "retryStrategy")
        queue_raw = _section(raw, "queue")

        defaults = RetryPolicy()
        retry = RetryPolicy(
            initial_delay_seconds=_number(
                retry_raw, "initialDelaySeconds", defaults.initial_delay_seconds
            ),
            max_delay_seconds=_number(retry_raw, "maxDelaySeconds", defaults.max_delay_seconds),
            multiplier=int(_number(retry_raw, "multiplier", defaults.multiplier)),
            max_attempts=int(_number(retry_raw, "maxAttempts", defaults.max_attempts)),
        )
        headers = webhook_raw.get("headers") or {}
        if not isinstance(headers, dict):
            raise ConfigError("webhook.headers must be an object.")
        headers = {str(key): str(value) for key, value in headers.items()}
        _validate_headers(headers)
        retry.validate()

        queue_defaults = QueueSettings()
        directory = queue_raw.get("directory")
        return cls(
            webhook=WebhookSettings(
                url=str(webhook_raw.get("url", "")),
                headers=headers,
                retry=retry,
                send_json=_flag(webhook_raw, "sendJson", default=True),
                send_markdown=_flag(webhook_raw, "sendMarkdown", default=True),
                timeout_seconds=_number(webhook_raw, "timeoutSeconds", 30.0),
            ),
            queue=QueueSettings(
                directory=Path(directory) if directory else queue_defaults.directory,
                stale_claim_seconds=_number(
                    queue_raw, "staleClaimSeconds", queue_defaults.stale_claim_seconds
                ),
            ),
        )

    def with_env_overrides(self) -> Settings:
        """Return a copy with ``DAYFLOW_*`` environment variables applied."""

        webhook = self.webhook
        url = os.getenv("DAYFLOW_WEBHOOK_URL")
        if url is not None:
            webhook = replace(webhook, url=url.strip())
        if os.getenv("DAYFLOW_WEBHOOK_TIMEOUT_SECONDS") is not None:
            webhook = replace(
                webhook,
                timeout_seconds=_env_float("DAYFLOW_WEBHOOK_TIMEOUT_SECONDS"),
            )

        retry = webhook.retry
        overrides: dict[str, Any] = {}
        if os.getenv("DAYFLOW_RETRY_INITIAL_DELAY_SECONDS") is not None:
            overrides["initial_delay_seconds"] = _env_float("DAYFLOW_RETRY_INITIAL_DELAY_SECONDS")
        if os.getenv("DAYFLOW_RETRY_MAX_DELAY_SECONDS") is not None:
            overrides["max_delay_seconds"] = _env_float("DAYFLOW_RETRY_MAX_DELAY_SECONDS")
        if os.getenv("DAYFLOW_RETRY_MULTIPLIER") is not None:
            overrides["multiplier"] = int(_env_float("DAYFLOW_RETRY_MULTIPLIER"))
        if os.getenv("DAYFLOW_RETRY_MAX_ATTEMPTS") is not None:
            overrides["max_attempts"] = int(_env_float("DAYFLOW_RETRY_MAX_ATTEMPTS"))
        if overrides:
            retry = replace(retry, **overrides)
            retry.validate()
            webhook = replace(webhook, retry=retry)

        queue = self.queue
        queue_dir = os.getenv("DAYFLOW_QUEUE_DIR")
        if queue_dir:
            queue = replace(queue, directory=Path(queue_dir))
        return Settings(webhook=webhook, queue=queue)

    @property
    def queue_dir(self) -> Path:
        return self.queue.directory.expanduser()

    def validate_for_delivery(self) -> None:
        """Raise configuration error if the webhook endpoint is missing or unsafe."""

        if not self.webhook.url:
            raise ConfigError(
                "A webhook URL is required. Set webhook.url in config.json "
                "or DAYFLOW_WEBHOOK_URL.",
            )
        if not is_valid_webhook_url(self.webhook.url):
            raise ConfigError(
                "Invalid webhook URL. Expected an absolute http:// or https:// URL "
                "with a host and no embedded credentials.",
            )
        _validate_headers(self.webhook.headers)
        self.webhook.retry.validate()


def _read_json(path: Path) -> dict[str, Any]:
    try:
        raw = json.loads(path.read_text("utf-8"))
    except json.JSONDecodeError as error:
        raise ConfigError(f"Config file is not valid JSON: {path}: {error}") from error
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file must contain a JSON object: {path}")
    return raw


def _section(raw: dict[str, Any], key: str) -> dict[str, Any]:
    value = raw.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"{key} must be an object.")
    return value


def _number(raw: dict[str, Any], key: str, default: float) -> float:
    value = raw.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ConfigError(f"{key} must be a number, got {value!r}.")
    return float(value)


def _flag(raw: dict[str, Any], key: str, *, default: bool) -> bool:
    value = raw.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be a boolean, got {value!r}.")
    return value


def _validate_headers(headers: dict[str, str]) -> None:
    for key, value in headers.items():
        if not is_valid_header_name(key):
            raise ConfigError(f"Invalid webhook header name: {key!r}")
        if not is_valid_header_value(value):
            raise ConfigError(f"Invalid webhook header value for {key!r}")


def _env_float(name: str) -> float:
    value = os.getenv(name, "")
    try:
        return float(value)
    except ValueError as error:
        raise ConfigError(f"Invalid numeric value for {name}: {value!r}") from error
