from __future__ import annotations

from functools import partial

import allure
import pytest

from dayflow_export.cards.intervals import CoverageLoopLimitError, find_coverage_gaps
from dayflow_export.cards.models import ActivityCard
from dayflow_export.cards.validator import (
    find_short_card,
    review_cards,
    validate_time_coverage,
    validate_timeline,
)

pytestmark = [
    allure.epic("Interval Reconciliation"),
    allure.feature("Card Acceptance"),
]


def _card(start: str, end: str, title: str = "Work") -> ActivityCard:
    return ActivityCard(
        start_time=start,
        end_time=end,
        category="Work",
        subcategory="",
        title=title,
        summary="",
        detailed_summary="",
    )


class TestTimeCoverage:
    def test_no_existing_cards_is_valid(self):
        result = validate_time_coverage([], [_card("10:00 AM", "10:30 AM")])
        assert result.is_valid
        assert result.error is None

    def test_same_cards_are_valid(self):
        cards = [_card("10:00 AM", "10:30 AM"), _card("10:30 AM", "11:15 AM")]
        assert validate_time_coverage(cards, list(cards)).is_valid

    def test_regrouped_cards_cover_inputs(self):
        existing = [_card("9:00 AM", "9:20 AM"), _card("9:20 AM", "10:00 AM")]
        proposed = [
            _card("9:01 AM", "9:35 AM", "Coding"),
            _card("9:35 AM", "9:58 AM", "Review"),
        ]
        assert validate_time_coverage(existing, proposed).is_valid

    def test_gap_error_lists_every_card(self):
        existing = [_card("10:00 AM", "11:00 AM", "Deep work")]
        proposed = [
            _card("10:00 AM", "10:30 AM", "Coding"),
            _card("10:35 AM", "11:00 AM", "Review"),
        ]

        result = validate_time_coverage(existing, proposed)

        assert not result.is_valid
        assert result.error == (
            "Missing coverage for time segments: 10:30 AM-10:35 AM (5 min)"
            "\n\n📥 INPUT CARDS:"
            "\n  1. 10:00 AM - 11:00 AM: Deep work"
            "\n\n📤 OUTPUT CARDS:"
            "\n  1. 10:00 AM - 10:30 AM: Coding"
            "\n  2. 10:35 AM - 11:00 AM: Review"
        )

    def test_small_gap_is_tolerated(self):
        existing = [_card("10:00 AM", "11:00 AM")]
        proposed = [_card("10:00 AM", "10:30 AM"), _card("10:33 AM", "11:00 AM")]
        assert validate_time_coverage(existing, proposed).is_valid

    def test_midnight_rollover_cards(self):
        existing = [_card("11:30 PM", "12:30 AM")]
        proposed = [_card("11:30 PM", "11:55 PM"), _card("11:55 PM", "12:30 AM")]
        assert validate_time_coverage(existing, proposed).is_valid

    def test_video_timestamps(self):
        existing = [_card("00:00", "15:00")]
        proposed = [_card("00:00", "07:00"), _card("12:00", "15:00")]
        result = validate_time_coverage(existing, proposed)
        assert not result.is_valid
        assert result.error is not None
        assert result.error.startswith(
            "Missing coverage for time segments: 12:07 AM-12:12 AM (5 min)",
        )

    def test_zero_length_output_cards_are_ignored(self):
        existing = [_card("10:00 AM", "10:20 AM")]
        proposed = [_card("10:00 AM", "10:00 AM"), _card("10:00 AM", "10:20 AM")]
        assert validate_time_coverage(existing, proposed).is_valid

    def test_iteration_cap_propagates(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(
            "dayflow_export.cards.validator.find_coverage_gaps",
            partial(find_coverage_gaps, max_iterations=1),
        )
        existing = [_card("10:00 AM", "11:00 AM")]
        proposed = [_card("10:00 AM", "10:10 AM"), _card("10:20 AM", "11:00 AM")]
        with pytest.raises(CoverageLoopLimitError):
            validate_time_coverage(existing, proposed)


class TestTimeline:
    def test_exactly_ten_minutes_passes(self):
        cards = [_card("10:00 AM", "10:10 AM"), _card("10:10 AM", "10:12 AM")]
        assert validate_timeline(cards).is_valid

    def test_short_card_fails_with_details(self):
        cards = [
            _card("00:00", "10:00", "Planning"),
            _card("10:00", "19:54", "Email"),
            _card("19:54", "20:00", "Wrap up"),
        ]
        result = validate_timeline(cards)
        assert not result.is_valid
        assert result.error == "Card 2 'Email' is only 9.9 minutes long"

    def test_last_card_may_be_short(self):
        cards = [_card("10:00 AM", "10:30 AM"), _card("10:30 AM", "10:31 AM")]
        assert validate_timeline(cards).is_valid
        assert validate_timeline([_card("10:00 AM", "10:01 AM")]).is_valid

    def test_rollover_card_duration(self):
        cards = [_card("11:50 PM", "12:10 AM"), _card("12:10 AM", "12:11 AM")]
        assert validate_timeline(cards).is_valid

    def test_unparseable_timestamp_fails_non_last_card(self):
        cards = [_card("soon", "later", "Mystery"), _card("10:00 AM", "10:30 AM")]
        violation = find_short_card(cards)
        assert violation is not None
        assert violation.index == 0
        assert violation.title == "Mystery"
        assert violation.duration_minutes == 0.0

    def test_stops_at_first_violation(self):
        cards = [
            _card("10:00 AM", "10:05 AM", "First"),
            _card("10:05 AM", "10:07 AM", "Second"),
            _card("10:07 AM", "10:30 AM", "Last"),
        ]
        violation = find_short_card(cards)
        assert violation is not None
        assert violation.title == "First"

    def test_empty_cards_are_valid(self):
        assert validate_timeline([]).is_valid


def test_review_cards_checks_coverage_before_durations():
    existing = [_card("10:00 AM", "11:00 AM")]
    proposed = [_card("10:00 AM", "10:05 AM"), _card("10:05 AM", "10:40 AM")]
    result = review_cards(existing, proposed)
    assert not result.is_valid
    assert result.error is not None
    assert result.error.startswith("Missing coverage")


def test_review_cards_reports_short_card_when_covered():
    existing = [_card("10:00 AM", "11:00 AM")]
    proposed = [_card("10:00 AM", "10:05 AM"), _card("10:05 AM", "11:00 AM")]
    result = review_cards(existing, proposed)
    assert not result.is_valid
    assert result.error == "Card 1 'Work' is only 5.0 minutes long"
