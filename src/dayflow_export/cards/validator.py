"""Acceptance checks for regenerated activity cards."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from dayflow_export.cards.intervals import (
    TimeInterval,
    find_coverage_gaps,
    merge_intervals,
)
from dayflow_export.cards.models import ActivityCard
from dayflow_export.cards.timestamps import duration_minutes, span_minutes

logger = logging.getLogger(__name__)

MIN_CARD_MINUTES = 10.0


@dataclass(frozen=True, slots=True)
class CardValidationResult:
    """Outcome of a card validation pass."""

    is_valid: bool
    error: str | None = None


@dataclass(frozen=True, slots=True)
class TimelineViolation:
    """First card found shorter than the minimum duration."""

    index: int
    title: str
    duration_minutes: float

    def describe(self) -> str:
        return (
            f"Card {self.index + 1} '{self.title}' is only "
            f"{self.duration_minutes:.1f} minutes long"
        )


def validate_time_coverage(
    existing_cards: Sequence[ActivityCard],
    new_cards: Sequence[ActivityCard],
) -> CardValidationResult:
    """Validate that ``new_cards`` cover every period spanned by ``existing_cards``.

    Cards with unparseable timestamps contribute no interval.

    Raises:
        CoverageLoopLimitError: the coverage scan hit its iteration cap.
    """

    if not existing_cards:
        return CardValidationResult(is_valid=True)

    required = merge_intervals(_card_intervals(existing_cards))
    report = find_coverage_gaps(required, _card_intervals(new_cards))
    if report.is_covered:
        return CardValidationResult(is_valid=True)

    logger.info("Card coverage rejected: %s", report.describe())
    return CardValidationResult(
        is_valid=False,
        error=_coverage_error_message(report.describe(), existing_cards, new_cards),
    )


def find_short_card(cards: Sequence[ActivityCard]) -> TimelineViolation | None:
    """Return the first non-final card shorter than ``MIN_CARD_MINUTES``."""

    last_index = len(cards) - 1
    for index, card in enumerate(cards):
        if index == last_index:
            break
        minutes = duration_minutes(card.start_time, card.end_time)
        if minutes < MIN_CARD_MINUTES:
            return TimelineViolation(index=index, title=card.title, duration_minutes=minutes)
    return None


def validate_timeline(cards: Sequence[ActivityCard]) -> CardValidationResult:
    """Validate that every card but the last lasts at least ten minutes."""

    violation = find_short_card(cards)
    if violation is None:
        return CardValidationResult(is_valid=True)
    logger.info("Card timeline rejected: %s", violation.describe())
    return CardValidationResult(is_valid=False, error=violation.describe())


def review_cards(
    existing_cards: Sequence[ActivityCard],
    new_cards: Sequence[ActivityCard],
) -> CardValidationResult:
    """Run coverage then duration checks; the first failure wins."""

    coverage = validate_time_coverage(existing_cards, new_cards)
    if not coverage.is_valid:
        return coverage
    return validate_timeline(new_cards)


def _card_intervals(cards: Sequence[ActivityCard]) -> list[TimeInterval]:
    intervals: list[TimeInterval] = []
    for card in cards:
        span = span_minutes(card.start_time, card.end_time)
        if span is None:
            continue
        intervals.append(TimeInterval(start=span[0], end=span[1]))
    return intervals


def _coverage_error_message(
    gaps: str,
    existing_cards: Sequence[ActivityCard],
    new_cards: Sequence[ActivityCard],
) -> str:
    lines = [f"Missing coverage for time segments: {gaps}", "", "📥 INPUT CARDS:"]
    lines.extend(_card_listing(existing_cards))
    lines.extend(["", "📤 OUTPUT CARDS:"])
    lines.extend(_card_listing(new_cards))
    return "\n".join(lines)


def _card_listing(cards: Sequence[ActivityCard]) -> list[str]:
    return [
        f"  {position}. {card.start_time} - {card.end_time}: {card.title}"
        for position, card in enumerate(cards, start=1)
    ]
