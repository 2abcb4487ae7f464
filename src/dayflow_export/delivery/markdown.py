"""Markdown rendering of accepted activity cards for webhook payloads."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence

from dayflow_export.cards.models import ActivityCard
from dayflow_export.cards.timestamps import duration_minutes

UNCATEGORIZED = "Uncategorized"


def format_cards_markdown(cards: Sequence[ActivityCard]) -> str:
    """Render cards grouped by category with per-card and total durations."""

    lines = ["# Activity Summary", ""]
    if not cards:
        lines.append("No activities recorded.")
        return "\n".join(lines)

    grouped: dict[str, list[ActivityCard]] = defaultdict(list)
    for card in cards:
        grouped[card.category or UNCATEGORIZED].append(card)

    total_minutes = 0.0
    for category in sorted(grouped):
        lines.append(f"## {category}")
        lines.append("")
        for card in grouped[category]:
            minutes = duration_minutes(card.start_time, card.end_time)
            total_minutes += minutes
            lines.append(
                f"- **{card.title}**: {card.start_time} - {card.end_time} "
                f"({format_duration(minutes)})",
            )
        lines.append("")

    lines.append("---")
    lines.append(f"**Total: {format_duration(total_minutes)}**")
    return "\n".join(lines)


def format_duration(minutes: float) -> str:
    """Human-readable duration: ``1h 5m``, ``2h`` or ``45m``."""

    whole = int(minutes)
    hours, mins = divmod(whole, 60)
    if hours and mins:
        return f"{hours}h {mins}m"
    if hours:
        return f"{hours}h"
    return f"{mins}m"
