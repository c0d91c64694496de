"""
Completion statistics.

Every function here is pure: it takes full snapshots of habits and logs and
returns a new value. Nothing reads the store.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Sequence

from .dates import date_str, month_range, week_days, weekday_of
from .models import Habit, HabitLog, Weekday
from .schedule import LogIndex, habits_scheduled_on, is_scheduled


@dataclass(frozen=True)
class DailyStats:
    total_target: int
    total_completed: int
    percentage: float


@dataclass(frozen=True)
class MonthlyStats:
    total_days_completed: int


@dataclass(frozen=True)
class DayProgress:
    day: date
    label: str
    completed: int
    target: int


@dataclass(frozen=True)
class WeeklyStats:
    days: list[DayProgress]
    total_target: int
    total_completed: int
    percentage: float
    max_day_value: int


@dataclass(frozen=True)
class HabitShare:
    habit_id: str
    name: str
    color: str
    count: int
    percentage: float


def daily_stats(habits: Sequence[Habit], logs: Sequence[HabitLog] | LogIndex, day: date) -> DailyStats:
    index = logs if isinstance(logs, LogIndex) else LogIndex(logs)
    key = date_str(day)

    total_target = 0
    total_completed = 0
    for h in habits_scheduled_on(habits, day):
        total_target += h.frequency
        total_completed += index.count(h.id, key)

    # over-completion is kept in the totals, only the percentage is capped
    pct = 0.0 if total_target == 0 else min(100.0, 100.0 * total_completed / total_target)
    return DailyStats(total_target=total_target, total_completed=total_completed, percentage=pct)


def monthly_stats(logs: Sequence[HabitLog], day: date) -> MonthlyStats:
    first, last = month_range(day)
    lo, hi = date_str(first), date_str(last)
    active = {l.date for l in logs if lo <= l.date <= hi and l.completed_count > 0}
    return MonthlyStats(total_days_completed=len(active))


def weekly_stats(
    habits: Sequence[Habit],
    logs: Sequence[HabitLog],
    today: date,
    week_start: Weekday = Weekday.MONDAY,
) -> WeeklyStats:
    """
    Seven days starting at the week start containing ``today``.

    ``target`` comes from the current schedule while ``completed`` sums every
    log dated that day, including logs of habits no longer scheduled on it.
    """
    completed_by_date: dict[str, int] = {}
    for l in logs:
        completed_by_date[l.date] = completed_by_date.get(l.date, 0) + l.completed_count

    points: list[DayProgress] = []
    for d in week_days(today, week_start):
        wd = weekday_of(d)
        target = sum(h.frequency for h in habits if is_scheduled(h, wd))
        points.append(
            DayProgress(
                day=d,
                label=wd.short,
                completed=completed_by_date.get(date_str(d), 0),
                target=target,
            )
        )

    total_target = sum(p.target for p in points)
    total_completed = sum(p.completed for p in points)
    pct = 0.0 if total_target == 0 else 100.0 * total_completed / total_target
    max_day = max([1] + [max(p.target, p.completed) for p in points])

    return WeeklyStats(
        days=points,
        total_target=total_target,
        total_completed=total_completed,
        percentage=pct,
        max_day_value=max_day,
    )


def distribution(habits: Sequence[Habit], logs: Sequence[HabitLog]) -> list[HabitShare]:
    total = sum(l.completed_count for l in logs)
    if total == 0:
        return []

    per_habit: dict[str, int] = {}
    for l in logs:
        per_habit[l.habit_id] = per_habit.get(l.habit_id, 0) + l.completed_count

    shares = [
        HabitShare(
            habit_id=h.id,
            name=h.name,
            color=h.color,
            count=per_habit.get(h.id, 0),
            percentage=100.0 * per_habit.get(h.id, 0) / total,
        )
        for h in habits
        if per_habit.get(h.id, 0) > 0
    ]
    # stable: ties keep habit order
    shares.sort(key=lambda s: -s.count)
    return shares
