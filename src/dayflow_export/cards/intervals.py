"""Interval merging and tolerant coverage comparison.

All values are minutes on a single timeline (clock minutes since midnight,
or elapsed video minutes), already normalized for day rollover.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from dayflow_export.cards.timestamps import minutes_to_clock

MERGE_EPSILON_MINUTES = 1.0
COVERAGE_SLACK_MINUTES = 3.0
MIN_PROPOSED_MINUTES = 0.1
MIN_CURSOR_STEP_MINUTES = 0.01
MAX_COVERAGE_ITERATIONS = 10_000


class CoverageLoopLimitError(RuntimeError):
    """Raised when the coverage cursor fails to finish within the iteration cap."""


@dataclass(frozen=True, slots=True)
class TimeInterval:
    """Closed ``[start, end]`` span in minutes."""

    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start

    def describe(self) -> str:
        """Clock-time rendering used in gap reports, e.g. ``10:30 AM-10:35 AM (5 min)``."""

        return (
            f"{minutes_to_clock(self.start)}-{minutes_to_clock(self.end)} "
            f"({int(self.duration)} min)"
        )


@dataclass(slots=True)
class CoverageReport:
    """Gaps in required coverage that exceed the slack."""

    gaps: list[TimeInterval]

    @property
    def is_covered(self) -> bool:
        return not self.gaps

    def describe(self) -> str:
        return ", ".join(gap.describe() for gap in self.gaps)


def merge_intervals(
    intervals: Iterable[TimeInterval],
    *,
    epsilon: float = MERGE_EPSILON_MINUTES,
) -> list[TimeInterval]:
    """Return sorted, non-overlapping intervals with the same union.

    Intervals separated by no more than ``epsilon`` are joined.
    """

    merged: list[TimeInterval] = []
    for interval in sorted(intervals, key=lambda item: (item.start, item.end)):
        if merged and interval.start <= merged[-1].end + epsilon:
            last = merged[-1]
            merged[-1] = TimeInterval(start=last.start, end=max(last.end, interval.end))
        else:
            merged.append(interval)
    return merged


def find_coverage_gaps(
    required: Iterable[TimeInterval],
    proposed: Iterable[TimeInterval],
    *,
    slack: float = COVERAGE_SLACK_MINUTES,
    max_iterations: int = MAX_COVERAGE_ITERATIONS,
) -> CoverageReport:
    """Check that ``proposed`` covers every ``required`` interval within ``slack``.

    Proposed segments shorter than six seconds are ignored as noise. The
    returned report lists only gaps longer than ``slack``; shorter gaps are
    treated as rounding between independently generated timelines.

    Raises:
        CoverageLoopLimitError: a required interval needed more than
            ``max_iterations`` cursor moves.
    """

    candidates = [
        interval for interval in proposed if interval.end - interval.start >= MIN_PROPOSED_MINUTES
    ]
    gaps: list[TimeInterval] = []
    for target in required:
        gaps.extend(
            _scan_required_interval(
                target,
                candidates,
                slack=slack,
                max_iterations=max_iterations,
            ),
        )
    return CoverageReport(gaps=[gap for gap in gaps if gap.duration > slack])


def _scan_required_interval(
    target: TimeInterval,
    candidates: list[TimeInterval],
    *,
    slack: float,
    max_iterations: int,
) -> list[TimeInterval]:
    gaps: list[TimeInterval] = []
    cursor = target.start
    iterations = 0
    while cursor < target.end:
        iterations += 1
        if iterations > max_iterations:
            raise CoverageLoopLimitError(
                "Time coverage validation loop exceeded safety limit - "
                "possible infinite loop detected",
            )

        reach = _furthest_reach(cursor, candidates, slack=slack)
        if reach is not None:
            cursor = max(cursor + MIN_CURSOR_STEP_MINUTES, reach)
            continue

        next_start = _next_start(cursor, target.end, candidates)
        if next_start is None:
            gaps.append(TimeInterval(start=cursor, end=target.end))
            break
        gaps.append(TimeInterval(start=cursor, end=next_start))
        cursor = next_start
    return gaps


def _furthest_reach(cursor: float, candidates: list[TimeInterval], *, slack: float) -> float | None:
    """End of the furthest-reaching candidate that covers ``cursor`` and moves past it."""

    reach: float | None = None
    for interval in candidates:
        if not interval.start - slack <= cursor <= interval.end + slack:
            continue
        if interval.end <= cursor:
            continue
        if reach is None or interval.end > reach:
            reach = interval.end
    return reach


def _next_start(cursor: float, limit: float, candidates: list[TimeInterval]) -> float | None:
    upcoming = [
        interval.start for interval in candidates if cursor < interval.start < limit
    ]
    return min(upcoming) if upcoming else None
