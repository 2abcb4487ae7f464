from __future__ import annotations

import json
from pathlib import Path

import allure
import httpx
import pytest
from click.testing import CliRunner

from dayflow_export.delivery import webhook as webhook_module
from dayflow_export.delivery.queue import BatchQueue
from dayflow_export.main import dayflow_export

pytestmark = [
    allure.epic("Command Line"),
    allure.feature("Cards, Queue & Webhook Commands"),
]


def _card(start: str, end: str, title: str) -> dict[str, str]:
    return {
        "startTime": start,
        "endTime": end,
        "category": "Work",
        "subcategory": "",
        "title": title,
        "summary": "",
        "detailedSummary": "",
    }


def _write(path: Path, payload: object) -> Path:
    path.write_text(json.dumps(payload), "utf-8")
    return path


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return _write(
        tmp_path / "config.json",
        {
            "webhook": {
                "url": "https://hooks.example.com/dayflow?token=secret",
                "retryStrategy": {"initialDelaySeconds": 0, "maxAttempts": 2},
                "sendMarkdown": False,
            },
            "queue": {"directory": str(tmp_path / "queue")},
        },
    )


@pytest.fixture()
def endpoint(monkeypatch: pytest.MonkeyPatch) -> list[int]:
    """Route every WebhookSender through a MockTransport answering with scripted statuses."""
    statuses: list[int] = []
    original_client = httpx.Client

    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(statuses.pop(0) if statuses else 200)

    def _client(**kwargs):
        kwargs["transport"] = httpx.MockTransport(_handler)
        return original_client(**kwargs)

    monkeypatch.setattr(webhook_module.httpx, "Client", _client)
    return statuses


def test_cards_validate_accepts_covering_cards(tmp_path: Path) -> None:
    existing = _write(tmp_path / "existing.json", [_card("10:00 AM", "11:00 AM", "Deep work")])
    proposed = _write(
        tmp_path / "proposed.json",
        [_card("10:00 AM", "10:40 AM", "Coding"), _card("10:40 AM", "11:00 AM", "Review")],
    )

    result = CliRunner().invoke(
        dayflow_export,
        ["cards", "validate", "--existing", str(existing), "--proposed", str(proposed)],
    )

    assert result.exit_code == 0, result.output
    assert "Cards accepted: 2 card(s) cover 1 input card(s)." in result.output


def test_cards_validate_rejects_gap(tmp_path: Path) -> None:
    existing = _write(tmp_path / "existing.json", [_card("10:00 AM", "11:00 AM", "Deep work")])
    proposed = _write(tmp_path / "proposed.json", [_card("10:00 AM", "10:30 AM", "Coding")])

    result = CliRunner().invoke(
        dayflow_export,
        ["cards", "validate", "--existing", str(existing), "--proposed", str(proposed)],
    )

    assert result.exit_code == 1
    assert "Missing coverage for time segments: 10:30 AM-11:00 AM (30 min)" in result.output


def test_cards_validate_and_deliver(
    tmp_path: Path,
    config_path: Path,
    endpoint: list[int],
) -> None:
    existing = _write(tmp_path / "existing.json", [_card("10:00 AM", "10:30 AM", "Work")])
    proposed = _write(tmp_path / "proposed.json", [_card("10:00 AM", "10:30 AM", "Work")])

    result = CliRunner().invoke(
        dayflow_export,
        [
            "cards",
            "validate",
            "--config",
            str(config_path),
            "--existing",
            str(existing),
            "--proposed",
            str(proposed),
            "--deliver",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Delivered to https://hooks.example.com/dayflow (HTTP 200, attempts=1)." in (
        result.output
    )
    assert "token=secret" not in result.output


def test_webhook_send_failure_queues_payload(
    tmp_path: Path,
    config_path: Path,
    endpoint: list[int],
) -> None:
    endpoint.extend([500, 500])

    result = CliRunner().invoke(
        dayflow_export,
        ["webhook", "send", "--config", str(config_path), "--payload", "hello"],
    )

    assert result.exit_code == 1
    assert "failed after 2 attempt(s)" in result.output
    assert "Payload queued for the next flush." in result.output
    assert BatchQueue(tmp_path / "queue").peek() == ["hello"]


def test_queue_stats_peek_flush(tmp_path: Path, config_path: Path, endpoint: list[int]) -> None:
    queue = BatchQueue(tmp_path / "queue")
    queue.enqueue("one")
    queue.enqueue("two")
    runner = CliRunner()

    stats = runner.invoke(dayflow_export, ["queue", "stats", "--config", str(config_path)])
    peek = runner.invoke(dayflow_export, ["queue", "peek", "--config", str(config_path)])
    flush = runner.invoke(dayflow_export, ["queue", "flush", "--config", str(config_path)])

    assert "Pending payloads: 2" in stats.output
    assert "1. one" in peek.output
    assert "2. two" in peek.output
    assert flush.exit_code == 0, flush.output
    assert "Delivered: 2" in flush.output
    assert queue.count == 0


def test_queue_clear_with_directory_override(tmp_path: Path) -> None:
    queue = BatchQueue(tmp_path / "other")
    queue.enqueue("one")

    result = CliRunner().invoke(
        dayflow_export,
        ["queue", "clear", "--queue-dir", str(tmp_path / "other"), "--yes"],
    )

    assert result.exit_code == 0, result.output
    assert "Removed 1 pending payload(s)." in result.output
    assert queue.count == 0


def test_webhook_send_requires_configured_url(tmp_path: Path) -> None:
    config = _write(tmp_path / "config.json", {"webhook": {"url": "ftp://example.com/x"}})

    result = CliRunner().invoke(
        dayflow_export,
        ["webhook", "send", "--config", str(config), "--payload", "hello"],
    )

    assert result.exit_code == 1
    assert "Invalid webhook URL" in result.output
