from __future__ import annotations

import logging
from datetime import date
from dataclasses import replace
from typing import Iterable

from .dates import date_str, today
from .models import ALL_DAYS, DEFAULT_COLORS, Habit, HabitLog, UserSettings, Weekday, new_habit_id, now_millis
from .schedule import LogIndex, StatusFilter, filter_by_status
from .stats import DailyStats, HabitShare, MonthlyStats, WeeklyStats, daily_stats, distribution, monthly_stats, weekly_stats
from .store import HabitStore

logger = logging.getLogger(__name__)


class HabitNotFoundError(LookupError):
    pass


def next_completed_count(current: int, slot: int) -> int:
    """
    Prefix-counter toggle: clicking a done slot un-does it and every slot
    after it; clicking an open slot fills everything up to and including it.
    """
    if slot < 0:
        raise ValueError(f"slot must not be negative, got {slot}")
    return slot if slot < current else slot + 1


class HabitTracker:
    """
    Application state over a HabitStore.

    ``habits``, ``logs`` and ``settings`` are caches of the store; every
    mutation writes through and then calls ``refresh()``.
    """

    def __init__(self, store: HabitStore) -> None:
        self.store = store
        self.habits: list[Habit] = []
        self.logs: list[HabitLog] = []
        self.settings = UserSettings()
        self._index: LogIndex | None = None
        self.refresh()

    def refresh(self) -> None:
        self.habits = self.store.get_habits()
        self.logs = self.store.get_logs()
        self.settings = self.store.get_settings()
        self._index = None

    @property
    def index(self) -> LogIndex:
        if self._index is None:
            self._index = LogIndex(self.logs)
        return self._index

    # -------------------------
    # Lookups
    # -------------------------

    def get_habit(self, habit_id: str) -> Habit:
        for h in self.habits:
            if h.id == habit_id:
                return h
        raise HabitNotFoundError(f"no habit with id {habit_id!r}")

    def find_habit(self, ref: str) -> Habit:
        """Resolve a habit by id, id prefix, or case-insensitive name."""
        ref = ref.strip()
        for h in self.habits:
            if h.id == ref:
                return h
        named = [h for h in self.habits if h.name.lower() == ref.lower()]
        if len(named) == 1:
            return named[0]
        prefixed = [h for h in self.habits if ref and h.id.startswith(ref)]
        if len(prefixed) == 1:
            return prefixed[0]
        if len(named) > 1 or len(prefixed) > 1:
            raise HabitNotFoundError(f"{ref!r} matches more than one habit; use its id")
        raise HabitNotFoundError(f"no habit named {ref!r}")

    def log_for(self, habit_id: str, day: date) -> HabitLog | None:
        return self.index.get(habit_id, date_str(day))

    def scheduled_on(self, day: date, status: StatusFilter = StatusFilter.ALL) -> list[Habit]:
        return filter_by_status(self.habits, self.index, day, status)

    # -------------------------
    # Stats
    # -------------------------

    def daily_stats(self, day: date) -> DailyStats:
        return daily_stats(self.habits, self.index, day)

    def monthly_stats(self, day: date | None = None) -> MonthlyStats:
        return monthly_stats(self.logs, day or today())

    def weekly_stats(self, day: date | None = None) -> WeeklyStats:
        return weekly_stats(self.habits, self.logs, day or today(), self.settings.start_of_week)

    def distribution(self) -> list[HabitShare]:
        return distribution(self.habits, self.logs)

    # -------------------------
    # Mutations
    # -------------------------

    def save_habit(
        self,
        name: str,
        frequency: int = 1,
        repeat_days: Iterable[Weekday] = ALL_DAYS,
        color: str = DEFAULT_COLORS[0],
        existing: Habit | None = None,
    ) -> Habit | None:
        """
        Create a habit, or update ``existing`` keeping its id and createdAt.
        Returns None without writing anything when the trimmed name is empty.
        """
        name = (name or "").strip()
        if not name:
            logger.debug("Ignoring habit save with an empty name")
            return None

        habit = Habit(
            id=existing.id if existing else new_habit_id(),
            name=name,
            frequency=frequency,
            repeat_days=frozenset(Weekday(d) for d in repeat_days),
            color=color,
            created_at=existing.created_at if existing else now_millis(),
        )
        self.store.save_habit(habit)
        self.refresh()
        return habit

    def toggle_slot(self, habit_id: str, day: date, slot: int) -> HabitLog:
        habit = self.get_habit(habit_id)
        if not 0 <= slot < habit.frequency:
            raise ValueError(f"slot must be between 0 and {habit.frequency - 1}, got {slot}")

        log = self.log_for(habit_id, day)
        current = log.completed_count if log else 0
        new_log = HabitLog(
            habit_id=habit_id,
            date=date_str(day),
            completed_count=next_completed_count(current, slot),
        )
        self.store.save_log(new_log)
        self.refresh()
        return new_log

    def delete_habit(self, habit_id: str) -> None:
        self.get_habit(habit_id)
        self.store.delete_habit(habit_id)
        self.refresh()

    def update_settings(
        self,
        user_name: str | None = None,
        theme: str | None = None,
        start_of_week: int | None = None,
    ) -> UserSettings:
        changes = {"user_name": user_name, "theme": theme, "start_of_week": start_of_week}
        settings = replace(self.settings, **{k: v for k, v in changes.items() if v is not None})
        self.store.save_settings(settings)
        self.refresh()
        return settings

    def import_data(self, raw: str) -> bool:
        ok = self.store.import_data(raw)
        if ok:
            self.refresh()
        return ok

    def clear_all_data(self) -> None:
        self.store.clear_all_data()
        self.refresh()
