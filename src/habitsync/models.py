"""Habit, log and settings records plus their JSON shapes."""

from __future__ import annotations

import re
import time
import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import Enum, IntEnum
from typing import Any, Iterable

DEFAULT_COLORS = ["#4B53BC", "#2D88FF", "#FF4D4D", "#27AE60", "#F2994A", "#9B51E0"]

_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")


class ValidationError(ValueError):
    """A record does not have the expected shape."""


class Weekday(IntEnum):
    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @classmethod
    def of(cls, day: date) -> "Weekday":
        # date.weekday() counts from Monday=0
        return cls((day.weekday() + 1) % 7)

    @property
    def short(self) -> str:
        return self.name[:3].title()


ALL_DAYS = frozenset(Weekday)


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


def new_habit_id() -> str:
    return uuid.uuid4().hex


def now_millis() -> int:
    return int(time.time() * 1000)


def _require(data: Any, key: str, kinds: type | tuple[type, ...], record: str) -> Any:
    if not isinstance(data, dict):
        raise ValidationError(f"{record} must be an object, got {type(data).__name__}")
    if key not in data:
        raise ValidationError(f"{record} is missing {key!r}")
    value = data[key]
    # bool is an int subclass; no field holds one
    if isinstance(value, bool) or not isinstance(value, kinds):
        raise ValidationError(f"{record}.{key} has the wrong type")
    return value


def check_date_str(value: str) -> str:
    if not isinstance(value, str) or not _DATE_RE.fullmatch(value):
        raise ValidationError(f"date must look like YYYY-MM-DD, got {value!r}")
    try:
        date.fromisoformat(value)
    except ValueError as e:
        raise ValidationError(f"not a calendar date: {value!r}") from e
    return value


def parse_weekdays(values: Iterable[Any]) -> frozenset[Weekday]:
    days = set()
    for v in values:
        if isinstance(v, bool) or not isinstance(v, int) or not 0 <= v <= 6:
            raise ValidationError(f"weekday must be an integer 0-6, got {v!r}")
        days.add(Weekday(v))
    return frozenset(days)


@dataclass(frozen=True)
class Habit:
    id: str
    name: str
    frequency: int = 1
    repeat_days: frozenset[Weekday] = ALL_DAYS
    color: str = DEFAULT_COLORS[0]
    created_at: int = field(default_factory=now_millis)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValidationError("habit id must not be empty")
        if self.frequency < 1:
            raise ValidationError(f"frequency must be at least 1, got {self.frequency}")
        if not isinstance(self.repeat_days, frozenset):
            object.__setattr__(self, "repeat_days", frozenset(Weekday(d) for d in self.repeat_days))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "frequency": self.frequency,
            "repeatDays": sorted(int(d) for d in self.repeat_days),
            "color": self.color,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Habit":
        repeat = _require(data, "repeatDays", list, "habit")
        return cls(
            id=_require(data, "id", str, "habit"),
            name=_require(data, "name", str, "habit"),
            frequency=_require(data, "frequency", int, "habit"),
            repeat_days=parse_weekdays(repeat),
            color=str(data.get("color", DEFAULT_COLORS[0])),
            created_at=int(_require(data, "createdAt", (int, float), "habit")),
        )


@dataclass(frozen=True)
class HabitLog:
    habit_id: str
    date: str
    completed_count: int = 0

    def __post_init__(self) -> None:
        check_date_str(self.date)
        if self.completed_count < 0:
            raise ValidationError(f"completedCount must not be negative, got {self.completed_count}")

    @property
    def key(self) -> tuple[str, str]:
        return (self.habit_id, self.date)

    def to_dict(self) -> dict[str, Any]:
        return {
            "habitId": self.habit_id,
            "date": self.date,
            "completedCount": self.completed_count,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "HabitLog":
        return cls(
            habit_id=_require(data, "habitId", str, "log"),
            date=_require(data, "date", str, "log"),
            completed_count=_require(data, "completedCount", int, "log"),
        )


@dataclass(frozen=True)
class UserSettings:
    user_name: str = "User"
    theme: Theme = Theme.SYSTEM
    start_of_week: Weekday = Weekday.MONDAY

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "theme", Theme(self.theme))
        except ValueError as e:
            raise ValidationError(f"unknown theme {self.theme!r}") from e
        if self.start_of_week not in (Weekday.SUNDAY, Weekday.MONDAY):
            raise ValidationError("startOfWeek must be 0 (Sunday) or 1 (Monday)")
        object.__setattr__(self, "start_of_week", Weekday(self.start_of_week))

    def to_dict(self) -> dict[str, Any]:
        return {
            "userName": self.user_name,
            "theme": self.theme.value,
            "startOfWeek": int(self.start_of_week),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "UserSettings":
        """
        Shallow merge over the defaults: keys missing from ``data`` keep
        their default value, so older files pick up new fields.
        """
        if not isinstance(data, dict):
            raise ValidationError(f"settings must be an object, got {type(data).__name__}")
        merged = {**cls().to_dict(), **data}
        user_name = _require(merged, "userName", str, "settings")
        start = _require(merged, "startOfWeek", int, "settings")
        return cls(user_name=user_name, theme=merged["theme"], start_of_week=start)
