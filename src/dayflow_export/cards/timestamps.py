"""Timestamp parsing for activity cards.

Two encodings appear in generated cards:

- wall-clock 12-hour time, ``h:mm a`` (``9:05 AM``), converted to minutes
  since midnight;
- elapsed video position, ``MM:SS`` or ``HH:MM:SS``, converted to minutes
  since the start of the recording.
"""

from __future__ import annotations

import logging
from datetime import datetime

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
_CLOCK_FORMAT = "%I:%M %p"
_CLOCK_MARKERS = ("AM", "PM")


def is_clock_time(value: str) -> bool:
    """Return True when ``value`` uses the 12-hour clock encoding."""

    return any(marker in value for marker in _CLOCK_MARKERS)


def parse_clock_minutes(value: str) -> float | None:
    """Parse ``h:mm AM`` into minutes since midnight, or None if malformed."""

    try:
        parsed = datetime.strptime(value.strip(), _CLOCK_FORMAT)  # noqa: DTZ007
    except ValueError:
        return None
    return float(parsed.hour * 60 + parsed.minute)


def parse_video_seconds(value: str) -> int | None:
    """Parse ``MM:SS`` or ``HH:MM:SS`` into total seconds, or None if malformed."""

    parts = value.strip().split(":")
    try:
        numbers = [int(part) for part in parts]
    except ValueError:
        return None
    if any(number < 0 for number in numbers):
        return None
    if len(numbers) == 2:  # noqa: PLR2004
        minutes, seconds = numbers
        return minutes * 60 + seconds
    if len(numbers) == 3:  # noqa: PLR2004
        hours, minutes, seconds = numbers
        return hours * 3600 + minutes * 60 + seconds
    return None


def parse_minutes(value: str) -> float | None:
    """Convert either timestamp encoding to minutes; None when unparseable."""

    if is_clock_time(value):
        return parse_clock_minutes(value)
    seconds = parse_video_seconds(value)
    if seconds is None:
        return None
    return seconds / 60.0


def span_minutes(start: str, end: str) -> tuple[float, float] | None:
    """Return ``(start, end)`` minutes with day rollover applied.

    An end earlier than its start is taken to cross midnight.
    """

    start_min = parse_minutes(start)
    end_min = parse_minutes(end)
    if start_min is None or end_min is None:
        logger.warning("Unparseable card timestamps: %r - %r", start, end)
        return None
    if end_min < start_min:
        end_min += MINUTES_PER_DAY
    return start_min, end_min


def duration_minutes(start: str, end: str) -> float:
    """Elapsed minutes between two timestamps; 0 when either is unparseable."""

    span = span_minutes(start, end)
    if span is None:
        return 0.0
    return span[1] - span[0]


def minutes_to_clock(minutes: float) -> str:
    """Render minutes since midnight as ``h:mm AM``; wraps past 24h."""

    whole = int(minutes)
    hours = (whole // 60) % 24
    mins = whole % 60
    period = "AM" if hours < 12 else "PM"  # noqa: PLR2004
    display_hour = hours % 12 or 12
    return f"{display_hour}:{mins:02d} {period}"
