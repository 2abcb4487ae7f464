"""File-backed delivery queue with rename-based claims.

Every payload lives in its own ``<epoch>.<micros>-<suffix>.json`` file, so a
plain filename sort gives enqueue order. ``dequeue_all`` claims files by
renaming them to ``.claimed-<claim-micros>-<uuid>.json`` before reading; ``os.rename`` is
atomic on a single filesystem, which makes each payload go to exactly one
caller even across processes sharing the directory. No locks are used.
"""

from __future__ import annotations

import logging
import os
import time
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)

CLAIM_PREFIX = ".claimed-"
PENDING_PREFIX = ".pending-"
QUEUE_SUFFIX = ".json"


class BatchQueue:
    """Persistent FIFO of payload strings awaiting webhook delivery."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory.expanduser()
        self.directory.mkdir(parents=True, exist_ok=True)
        self._last_stamp_us = 0

    def enqueue(self, payload: str) -> Path:
        """Durably store ``payload``; returns the queue file path."""

        target = self.directory / self._next_filename()
        pending = self.directory / f"{PENDING_PREFIX}{uuid.uuid4().hex}.tmp"
        try:
            with pending.open("wb") as handle:
                handle.write(payload.encode("utf-8"))
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(pending, target)
        finally:
            pending.unlink(missing_ok=True)
        logger.debug("Enqueued payload as %s", target.name)
        return target

    def dequeue_all(self) -> list[str]:
        """Claim, read and delete every queued payload, oldest first."""

        claimed: list[tuple[Path, str]] = []
        for path in self._queue_files():
            claim_path = self.directory / _claim_filename()
            try:
                path.rename(claim_path)
            except FileNotFoundError:
                # Claimed by a concurrent caller.
                continue
            except OSError as error:
                logger.warning("Failed to claim %s: %s", path.name, error)
                continue
            claimed.append((claim_path, path.name))

        payloads: list[str] = []
        consumed: list[Path] = []
        for claim_path, original_name in claimed:
            try:
                payloads.append(claim_path.read_bytes().decode("utf-8"))
            except FileNotFoundError:
                logger.warning("Claimed file was deleted externally: %s", claim_path.name)
                continue
            except (OSError, UnicodeDecodeError) as error:
                logger.warning("Failed to read claimed file %s: %s", claim_path.name, error)
                self._release_claim(claim_path, original_name)
                continue
            consumed.append(claim_path)

        for claim_path in consumed:
            try:
                claim_path.unlink(missing_ok=True)
            except OSError as error:
                logger.warning("Failed to delete claimed file %s: %s", claim_path.name, error)

        if payloads:
            logger.info("Dequeued %d payload(s) from %s", len(payloads), self.directory)
        return payloads

    def peek(self) -> list[str]:
        """Return queued payloads without removing them."""

        payloads: list[str] = []
        for path in self._queue_files():
            try:
                payloads.append(path.read_bytes().decode("utf-8"))
            except FileNotFoundError:
                continue
            except (OSError, UnicodeDecodeError) as error:
                logger.warning("Failed to read queued file %s: %s", path.name, error)
        return payloads

    @property
    def count(self) -> int:
        """Number of unclaimed queued payloads."""

        return len(self._queue_files())

    def clear(self) -> int:
        """Delete every unclaimed payload; returns how many were removed."""

        removed = 0
        for path in self._queue_files():
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as error:
                logger.warning("Failed to delete queued file %s: %s", path.name, error)
                continue
            removed += 1
        return removed

    def recover_stale_claims(self, older_than_seconds: float) -> int:
        """Return abandoned claims to the queue.

        A claim older than ``older_than_seconds`` belongs to a process that
        stopped between claiming and deleting. Claim age comes from the claim
        filename; the restored name is derived from the file's modification
        time (the enqueue write) so it sorts near its original slot.
        """

        cutoff_us = int((time.time() - older_than_seconds) * 1_000_000)
        recovered = 0
        for path in self._claimed_files():
            try:
                mtime = path.stat().st_mtime
            except FileNotFoundError:
                continue
            claimed_at_us = _claim_stamp(path.name)
            if claimed_at_us is None:
                claimed_at_us = int(mtime * 1_000_000)
            if claimed_at_us > cutoff_us:
                continue
            restored = self.directory / _queue_filename(int(mtime * 1_000_000))
            try:
                path.rename(restored)
            except FileNotFoundError:
                continue
            except OSError as error:
                logger.warning("Failed to recover claimed file %s: %s", path.name, error)
                continue
            recovered += 1
        if recovered:
            logger.warning("Recovered %d stale claim(s) in %s", recovered, self.directory)
        return recovered

    def _queue_files(self) -> list[Path]:
        return sorted(
            (
                path
                for path in self._list_directory()
                if path.name.endswith(QUEUE_SUFFIX) and not path.name.startswith(".")
            ),
            key=lambda path: path.name,
        )

    def _claimed_files(self) -> list[Path]:
        return [
            path
            for path in self._list_directory()
            if path.name.startswith(CLAIM_PREFIX) and path.name.endswith(QUEUE_SUFFIX)
        ]

    def _list_directory(self) -> list[Path]:
        try:
            return list(self.directory.iterdir())
        except OSError as error:
            logger.warning("Failed to list queue directory %s: %s", self.directory, error)
            return []

    def _release_claim(self, claim_path: Path, original_name: str) -> None:
        try:
            claim_path.rename(self.directory / original_name)
        except OSError as error:
            logger.warning("Failed to release claim %s: %s", claim_path.name, error)

    def _next_filename(self) -> str:
        stamp_us = max(time.time_ns() // 1_000, self._last_stamp_us + 1)
        self._last_stamp_us = stamp_us
        return _queue_filename(stamp_us)


def _queue_filename(stamp_us: int) -> str:
    seconds, micros = divmod(stamp_us, 1_000_000)
    return f"{seconds}.{micros:06d}-{uuid.uuid4().hex[:8].upper()}{QUEUE_SUFFIX}"


def _claim_filename() -> str:
    return f"{CLAIM_PREFIX}{time.time_ns() // 1_000}-{uuid.uuid4().hex}{QUEUE_SUFFIX}"


def _claim_stamp(name: str) -> int | None:
    """Claim time in microseconds; None for claims without an embedded stamp."""

    body = name.removeprefix(CLAIM_PREFIX).removesuffix(QUEUE_SUFFIX)
    stamp, sep, _ = body.partition("-")
    if not sep or not stamp.isdigit():
        return None
    return int(stamp)
