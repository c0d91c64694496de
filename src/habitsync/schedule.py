from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Iterable

from .dates import date_str, weekday_of
from .models import Habit, HabitLog, Weekday


class DuplicateLogError(RuntimeError):
    """More than one log exists for the same habit and date."""


class StatusFilter(str, Enum):
    ALL = "all"
    PENDING = "pending"
    COMPLETED = "completed"


class LogIndex:
    """
    Logs keyed by (habit_id, date).

    Building the index refuses duplicate keys: the store upserts logs, so a
    duplicate means the data was written by something else.
    """

    def __init__(self, logs: Iterable[HabitLog]) -> None:
        self._by_key: dict[tuple[str, str], HabitLog] = {}
        for log in logs:
            if log.key in self._by_key:
                raise DuplicateLogError(
                    f"duplicate log for habit {log.habit_id!r} on {log.date}"
                )
            self._by_key[log.key] = log

    def get(self, habit_id: str, day: str) -> HabitLog | None:
        return self._by_key.get((habit_id, day))

    def count(self, habit_id: str, day: str) -> int:
        log = self.get(habit_id, day)
        return log.completed_count if log else 0

    def __len__(self) -> int:
        return len(self._by_key)


def is_scheduled(habit: Habit, weekday: Weekday | int) -> bool:
    return Weekday(weekday) in habit.repeat_days


def habits_scheduled_on(habits: Iterable[Habit], day: date) -> list[Habit]:
    wd = weekday_of(day)
    return [h for h in habits if is_scheduled(h, wd)]


def find_log(logs: Iterable[HabitLog] | LogIndex, habit_id: str, day: str) -> HabitLog | None:
    index = logs if isinstance(logs, LogIndex) else LogIndex(logs)
    return index.get(habit_id, day)


def is_habit_complete(habit: Habit, log: HabitLog | None) -> bool:
    return log is not None and log.completed_count >= habit.frequency


def filter_by_status(
    habits: Iterable[Habit],
    logs: Iterable[HabitLog] | LogIndex,
    day: date,
    status: StatusFilter = StatusFilter.ALL,
) -> list[Habit]:
    """Habits scheduled on ``day``, narrowed to pending or completed ones."""
    index = logs if isinstance(logs, LogIndex) else LogIndex(logs)
    key = date_str(day)
    out: list[Habit] = []
    for h in habits_scheduled_on(habits, day):
        done = is_habit_complete(h, index.get(h.id, key))
        if status is StatusFilter.PENDING and done:
            continue
        if status is StatusFilter.COMPLETED and not done:
            continue
        out.append(h)
    return out
