"""Typed dataclasses for the TimeBlox data model.

All models use from_dict/to_dict for JSON/YAML serialization.
camelCase in JSON is mapped to snake_case in Python.
Unknown keys are ignored; missing keys use defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from timeblox.clock import MINUTES_PER_DAY, format_time, parse_time


MIN_BLOCK_MINUTES = 15
DEFAULT_CATEGORY_NAME = "Uncategorized"
DEFAULT_CATEGORY_COLOR = "bg-slate-600"


# ── Time blocks ───────────────────────────────────────────────


@dataclass(frozen=True)
class TimeBlock:
    """A single scheduled interval. Immutable; edits go through replace()."""

    start_time: str
    end_time: str
    title: str = ""
    category: str = DEFAULT_CATEGORY_NAME
    color: str = DEFAULT_CATEGORY_COLOR
    notes: str = ""

    @property
    def start_minutes(self) -> int:
        return parse_time(self.start_time)

    @property
    def end_minutes(self) -> int:
        # '12:00 AM' as an end time means the end of the day
        end = parse_time(self.end_time)
        if end == 0 and self.start_minutes > 0:
            return MINUTES_PER_DAY
        return end

    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes

    def overlaps(self, start: int, end: int) -> bool:
        return start < self.end_minutes and end > self.start_minutes

    def with_minutes(self, start: int | None = None, end: int | None = None) -> TimeBlock:
        """Copy with new start and/or end, given in minutes."""
        changes: dict[str, str] = {}
        if start is not None:
            changes["start_time"] = format_time(start)
        if end is not None:
            changes["end_time"] = format_time(end)
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> TimeBlock:
        return cls(
            start_time=str(d.get("startTime", d.get("start_time", ""))),
            end_time=str(d.get("endTime", d.get("end_time", ""))),
            title=str(d.get("title", "")),
            category=str(d.get("category", DEFAULT_CATEGORY_NAME)),
            color=str(d.get("color", DEFAULT_CATEGORY_COLOR)),
            notes=str(d.get("notes") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "startTime": self.start_time,
            "endTime": self.end_time,
            "title": self.title,
            "category": self.category,
            "color": self.color,
        }
        if self.notes:
            d["notes"] = self.notes
        return d


# ── Categories ────────────────────────────────────────────────


@dataclass(frozen=True)
class ActivityCategory:
    id: str
    name: str
    color: str

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ActivityCategory:
        return cls(
            id=str(d.get("id", "")),
            name=str(d.get("name", "")),
            color=str(d.get("color", DEFAULT_CATEGORY_COLOR)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "color": self.color}


def default_categories() -> list[ActivityCategory]:
    return [
        ActivityCategory("1", "Work", "bg-red-500"),
        ActivityCategory("2", "Rest", "bg-blue-500"),
        ActivityCategory("3", "Workout", "bg-green-500"),
        ActivityCategory("4", "Meeting", "bg-orange-500"),
        ActivityCategory("5", "Meal", "bg-amber-500"),
        ActivityCategory("6", "Errand", "bg-purple-500"),
        ActivityCategory("7", "Focus", "bg-sky-500"),
        ActivityCategory("8", DEFAULT_CATEGORY_NAME, DEFAULT_CATEGORY_COLOR),
    ]


def find_category(categories: list[ActivityCategory], name: str) -> ActivityCategory | None:
    """First category whose name matches exactly."""
    for c in categories:
        if c.name == name:
            return c
    return None


# ── Master days ───────────────────────────────────────────────


@dataclass(frozen=True)
class MasterDay:
    """One of the fixed template slots a date can be promoted into."""

    id: int
    date_key: str | None = None
    color: str = ""
    name: str = ""
    color_name: str = ""

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> MasterDay:
        return cls(
            id=int(d.get("id", 0)),
            date_key=d.get("dateKey", d.get("date_key")),
            color=str(d.get("color", "")),
            name=str(d.get("name", "")),
            color_name=str(d.get("colorName", d.get("color_name", ""))),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "dateKey": self.date_key,
            "color": self.color,
            "name": self.name,
            "colorName": self.color_name,
        }


# ── Settings ──────────────────────────────────────────────────


@dataclass
class Settings:
    """User settings loaded from settings.yaml."""

    categories: list[ActivityCategory] = field(default_factory=default_categories)
    master_days: list[MasterDay] = field(default_factory=list)
    show_copy_indicators: bool = True
    show_today_indicator: bool = True
    generator_command: str = ""
    generator_timeout: int = 60
    default_tasks: str = ""

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Settings:
        if not d or not isinstance(d, dict):
            return cls()
        categories = [ActivityCategory.from_dict(c) for c in (d.get("categories") or []) if isinstance(c, dict)]
        masters = [MasterDay.from_dict(m) for m in (d.get("master_days") or []) if isinstance(m, dict)]
        return cls(
            categories=categories or default_categories(),
            master_days=masters,
            show_copy_indicators=bool(d.get("show_copy_indicators", True)),
            show_today_indicator=bool(d.get("show_today_indicator", True)),
            generator_command=str(d.get("generator_command", "") or ""),
            generator_timeout=int(d.get("generator_timeout", 60)),
            default_tasks=str(d.get("default_tasks", "") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "categories": [c.to_dict() for c in self.categories],
            "show_copy_indicators": self.show_copy_indicators,
            "show_today_indicator": self.show_today_indicator,
        }
        if self.master_days:
            d["master_days"] = [m.to_dict() for m in self.master_days]
        if self.generator_command:
            d["generator_command"] = self.generator_command
        if self.generator_timeout != 60:
            d["generator_timeout"] = self.generator_timeout
        if self.default_tasks:
            d["default_tasks"] = self.default_tasks
        return d
