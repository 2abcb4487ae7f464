"""Activity card domain models and JSON loading."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass(frozen=True, slots=True)
class Distraction:
    """Short interruption recorded inside an activity card."""

    start_time: str
    end_time: str
    title: str
    summary: str = ""

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Distraction:
        return cls(
            start_time=str(raw.get("startTime", "")),
            end_time=str(raw.get("endTime", "")),
            title=str(raw.get("title", "")),
            summary=str(raw.get("summary", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "startTime": self.start_time,
            "endTime": self.end_time,
            "title": self.title,
            "summary": self.summary,
        }


@dataclass(frozen=True, slots=True)
class AppSites:
    """Primary and secondary app or site used during a card."""

    primary: str | None = None
    secondary: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"primary": self.primary, "secondary": self.secondary}


@dataclass(frozen=True, slots=True)
class ActivityCard:
    """One generated timeline segment.

    ``start_time``/``end_time`` are either wall-clock (``10:30 AM``) or
    elapsed-video (``05:30``, ``01:05:30``) strings.
    """

    start_time: str
    end_time: str
    category: str
    subcategory: str
    title: str
    summary: str
    detailed_summary: str
    distractions: tuple[Distraction, ...] | None = None
    app_sites: AppSites | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ActivityCard:
        """Build a card from the generator's camelCase JSON object."""

        for key in ("startTime", "endTime", "title"):
            if key not in raw:
                raise ValueError(f"Activity card is missing required field {key!r}.")

        distractions_raw = raw.get("distractions")
        distractions: tuple[Distraction, ...] | None = None
        if isinstance(distractions_raw, list):
            distractions = tuple(
                Distraction.from_dict(item) for item in distractions_raw if isinstance(item, dict)
            )

        app_sites_raw = raw.get("appSites")
        app_sites: AppSites | None = None
        if isinstance(app_sites_raw, dict):
            app_sites = AppSites(
                primary=app_sites_raw.get("primary"),
                secondary=app_sites_raw.get("secondary"),
            )

        return cls(
            start_time=str(raw["startTime"]),
            end_time=str(raw["endTime"]),
            category=str(raw.get("category", "")),
            subcategory=str(raw.get("subcategory", "")),
            title=str(raw["title"]),
            summary=str(raw.get("summary", "")),
            detailed_summary=str(raw.get("detailedSummary", "")),
            distractions=distractions,
            app_sites=app_sites,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize back to the camelCase JSON shape."""

        payload: dict[str, Any] = {
            "startTime": self.start_time,
            "endTime": self.end_time,
            "category": self.category,
            "subcategory": self.subcategory,
            "title": self.title,
            "summary": self.summary,
            "detailedSummary": self.detailed_summary,
        }
        if self.distractions is not None:
            payload["distractions"] = [item.to_dict() for item in self.distractions]
        if self.app_sites is not None:
            payload["appSites"] = self.app_sites.to_dict()
        return payload


def parse_cards(raw: Any) -> list[ActivityCard]:
    """Parse a JSON array of cards, or an object holding one under ``cards``."""

    if isinstance(raw, dict):
        raw = raw.get("cards")
    if not isinstance(raw, list):
        raise ValueError("Expected a JSON array of activity cards or an object with 'cards'.")
    cards: list[ActivityCard] = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValueError(f"cards[{index}] must be an object.")
        cards.append(ActivityCard.from_dict(item))
    return cards


def load_cards(path: Path) -> list[ActivityCard]:
    """Load activity cards from a JSON file."""

    try:
        raw = json.loads(path.read_text("utf-8"))
    except json.JSONDecodeError as error:
        raise ValueError(f"{path} is not valid JSON: {error}") from error
    return parse_cards(raw)


def cards_to_json(cards: list[ActivityCard]) -> str:
    """Serialize cards as a JSON array suitable for a webhook payload."""

    return json.dumps([card.to_dict() for card in cards], ensure_ascii=False)
