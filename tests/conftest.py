"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

_DAYFLOW_ENV_KEYS = (
    "DAYFLOW_CONFIG_PATH",
    "DAYFLOW_WEBHOOK_URL",
    "DAYFLOW_WEBHOOK_TIMEOUT_SECONDS",
    "DAYFLOW_RETRY_INITIAL_DELAY_SECONDS",
    "DAYFLOW_RETRY_MAX_DELAY_SECONDS",
    "DAYFLOW_RETRY_MULTIPLIER",
    "DAYFLOW_RETRY_MAX_ATTEMPTS",
    "DAYFLOW_QUEUE_DIR",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep tests away from the real ~/.dayflow config and DAYFLOW_* overrides."""
    for key in _DAYFLOW_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("DAYFLOW_CONFIG_PATH", str(tmp_path / "missing-config.json"))

