"""Trend scan results: parsing, caching and alert formatting."""

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from integrations.state import StateStore

logger = logging.getLogger(__name__)


class TrendCategory(Enum):
    GENERAL = "General"
    AUDIO = "Viral Audio"
    FORMATS = "Video Formats"
    PLOTS = "Hashtags & Plots"


CATEGORY_ALIASES = {
    "general": TrendCategory.GENERAL,
    "audio": TrendCategory.AUDIO,
    "music": TrendCategory.AUDIO,
    "formats": TrendCategory.FORMATS,
    "format": TrendCategory.FORMATS,
    "video": TrendCategory.FORMATS,
    "plots": TrendCategory.PLOTS,
    "hashtags": TrendCategory.PLOTS,
}

CATEGORY_EMOJI = {
    TrendCategory.GENERAL: "🔥",
    TrendCategory.AUDIO: "🎵",
    TrendCategory.FORMATS: "🎬",
    TrendCategory.PLOTS: "📝",
}


def resolve_category(value: Optional[str], default: TrendCategory = TrendCategory.GENERAL) -> TrendCategory:
    """Map a display name or short alias ("audio") to a category."""
    if not value or not value.strip():
        return default
    value = value.strip()
    for category in TrendCategory:
        if category.value.lower() == value.lower():
            return category
    return CATEGORY_ALIASES.get(value.split()[0].lower(), default)


@dataclass(frozen=True)
class TrendItem:
    platform: str
    trend_name: str
    description: str = ""
    hype_reason: str = ""
    category: str = TrendCategory.GENERAL.value
    growth_metric: Optional[str] = None
    difficulty: Optional[str] = None
    vibe: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: dict, category: Optional[str] = None) -> "TrendItem":
        return cls(
            platform=str(raw.get("platform") or "Instagram"),
            trend_name=str(raw["trendName"]),
            description=str(raw.get("description") or ""),
            hype_reason=str(raw.get("hypeReason") or ""),
            category=category or raw.get("category") or TrendCategory.GENERAL.value,
            growth_metric=raw.get("growthMetric"),
            difficulty=raw.get("difficulty"),
            vibe=raw.get("vibe"),
        )

    def to_dict(self) -> dict:
        data = {
            "platform": self.platform,
            "trendName": self.trend_name,
            "description": self.description,
            "hypeReason": self.hype_reason,
            "category": self.category,
        }
        for key, value in (("growthMetric", self.growth_metric), ("difficulty", self.difficulty), ("vibe", self.vibe)):
            if value:
                data[key] = value
        return data


_FENCED_JSON = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)


def parse_trends(text: Optional[str], category: TrendCategory) -> list[TrendItem]:
    """Extract a JSON array of trends from a model response."""
    if not text:
        return []
    match = _FENCED_JSON.search(text)
    raw = match.group(1) if match else text.strip()
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Trend response was not JSON: {raw[:100]}")
        return []
    if not isinstance(parsed, list):
        return []

    items = []
    for entry in parsed:
        if not isinstance(entry, dict) or not entry.get("trendName"):
            continue
        items.append(TrendItem.from_dict(entry, category=category.value))
    return items


class TrendCache:
    """The current trend set. Replaced wholesale, never merged."""

    def __init__(self, store: StateStore):
        self.store = store
        self._items: list[TrendItem] = []
        for raw in store.load("trends", []) or []:
            try:
                self._items.append(TrendItem.from_dict(raw))
            except (KeyError, TypeError):
                logger.warning(f"Skipping malformed cached trend: {raw!r}")

    def items(self) -> list[TrendItem]:
        return list(self._items)

    def replace(self, items: list[TrendItem]) -> None:
        self.store.save("trends", [t.to_dict() for t in items])
        self._items = list(items)


def format_trend_alert(trend: TrendItem) -> str:
    """Rich Telegram message for the top trend of a scan."""
    category = resolve_category(trend.category)
    emoji = CATEGORY_EMOJI[category]

    lines = [
        f"*📡 3D RADAR ALERT* | {trend.category or 'General'}",
        "",
        f"{emoji} *Trend:* {trend.trend_name}",
        f"🎯 *Platform:* {trend.platform}",
        f"📈 *Metrics:* {trend.growth_metric or 'High activity'}",
        "",
        "🔎 *Why it's hyped:*",
        f"_{trend.hype_reason}_",
        "",
        "💡 *Gist:*",
        trend.description,
    ]
    if trend.difficulty:
        lines.extend(["", f"⚠️ *Difficulty:* {trend.difficulty}"])
    if trend.vibe:
        lines.append(f"✨ *Vibe:* {trend.vibe}")
    return "\n".join(lines)
