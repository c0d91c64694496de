from __future__ import annotations

import re
from datetime import date, timedelta

from .models import Weekday

_DAY_NAMES = {
    "sun": Weekday.SUNDAY,
    "mon": Weekday.MONDAY,
    "tue": Weekday.TUESDAY,
    "wed": Weekday.WEDNESDAY,
    "thu": Weekday.THURSDAY,
    "fri": Weekday.FRIDAY,
    "sat": Weekday.SATURDAY,
}


def today() -> date:
    return date.today()


def date_str(day: date) -> str:
    return day.isoformat()


def weekday_of(day: date) -> Weekday:
    return Weekday.of(day)


def start_of_week(day: date, week_start: Weekday = Weekday.MONDAY) -> date:
    back = (int(weekday_of(day)) - int(week_start)) % 7
    return day - timedelta(days=back)


def week_days(day: date, week_start: Weekday = Weekday.MONDAY) -> list[date]:
    """The seven dates of the week containing ``day``."""
    first = start_of_week(day, week_start)
    return [first + timedelta(days=i) for i in range(7)]


def month_range(day: date) -> tuple[date, date]:
    """First and last date (inclusive) of ``day``'s calendar month."""
    first = day.replace(day=1)
    if first.month == 12:
        nxt = first.replace(year=first.year + 1, month=1)
    else:
        nxt = first.replace(month=first.month + 1)
    return first, nxt - timedelta(days=1)


def relative_label(day: date, ref: date | None = None) -> str:
    ref = ref or today()
    if day == ref:
        return "Today"
    if day == ref - timedelta(days=1):
        return "Yesterday"
    return f"{day.strftime('%B')} {day.day}"


def parse_day(
    value: str | None,
    ref: date | None = None,
    week_start: Weekday = Weekday.MONDAY,
) -> date:
    """
    Parse flexible user date input relative to ``ref`` (default: today).
    Accepts:
      - None / blank -> ref
      - ISO "2026-10-19"
      - keywords: "today", "yesterday", "tomorrow"
      - relative: "3 days ago", "1 week ago", "in 2 days"
      - weekday names: "mon", "friday" -> that day in ref's week, which
        begins on ``week_start``
    Raises ValueError when nothing matches.
    """
    ref = ref or today()
    if not value or not value.strip():
        return ref

    s = value.strip().lower()

    # --- 1) ISO ---
    if re.fullmatch(r"\d{4}-\d{2}-\d{2}", s):
        return date.fromisoformat(s)

    # --- 2) Keywords ---
    if s == "today":
        return ref
    if s == "yesterday":
        return ref - timedelta(days=1)
    if s == "tomorrow":
        return ref + timedelta(days=1)

    # --- 3) Relative like "3 days ago", "in 2 weeks" ---
    m = re.fullmatch(r"(\d+)\s*(day|days|week|weeks)\s*ago", s)
    if m:
        return ref - _span(int(m.group(1)), m.group(2))

    m = re.fullmatch(r"in\s+(\d+)\s*(day|days|week|weeks)", s)
    if m:
        return ref + _span(int(m.group(1)), m.group(2))

    # --- 4) Weekday of the current week ---
    wd = _DAY_NAMES.get(s[:3])
    if wd is not None and len(s) >= 3 and wd.name.lower().startswith(s):
        return next(d for d in week_days(ref, week_start) if weekday_of(d) == wd)

    raise ValueError(
        f"Could not parse date {value!r}. Try '2026-10-19', 'today', 'yesterday', "
        f"'3 days ago' or a weekday like 'mon'."
    )


def _span(n: int, unit: str) -> timedelta:
    if unit.startswith("week"):
        return timedelta(weeks=n)
    return timedelta(days=n)


def parse_weekday_spec(raw: str) -> frozenset[Weekday]:
    """
    Parse a repeat-day spec:
      - "daily" / "all", "weekdays", "weekends", "none"
      - comma/space separated names or numbers: "mon,wed,fri", "1 3 5"
    """
    s = raw.strip().lower()
    if s in ("daily", "all", "everyday"):
        return frozenset(Weekday)
    if s == "weekdays":
        return frozenset(Weekday(i) for i in range(1, 6))
    if s == "weekends":
        return frozenset({Weekday.SATURDAY, Weekday.SUNDAY})
    if s in ("none", ""):
        return frozenset()

    days: set[Weekday] = set()
    for chunk in s.replace(",", " ").split():
        if chunk.isdigit():
            n = int(chunk)
            if not 0 <= n <= 6:
                raise ValueError(f"weekday numbers run 0 (Sun) to 6 (Sat), got {n}")
            days.add(Weekday(n))
            continue
        wd = _DAY_NAMES.get(chunk[:3])
        if wd is None or len(chunk) < 3 or not wd.name.lower().startswith(chunk):
            raise ValueError(f"unknown weekday {chunk!r}")
        days.add(wd)
    return frozenset(days)


def format_weekdays(days: frozenset[Weekday], week_start: Weekday = Weekday.MONDAY) -> str:
    if len(days) == 7:
        return "daily"
    if not days:
        return "never"
    ordered = sorted(days, key=lambda d: (int(d) - int(week_start)) % 7)
    return ", ".join(d.short for d in ordered)
