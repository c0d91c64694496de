from __future__ import annotations

import argparse
import json
import logging
import stat
from datetime import date
from pathlib import Path

from .dates import format_weekdays, parse_day, parse_weekday_spec, relative_label, today
from .models import DEFAULT_COLORS, Habit, HabitLog, Theme, Weekday
from .paths import describe_source, resolve_data_path
from .safety import UnsafeDataPathError, assert_safe_data_path
from .schedule import DuplicateLogError, LogIndex, StatusFilter
from .store import SETTINGS_KEY, HabitStore
from .tracker import HabitNotFoundError, HabitTracker

logger = logging.getLogger(__name__)


# -------------------------
# Parsing helpers
# -------------------------

def _parse_date(value: str | None, week_start: Weekday = Weekday.MONDAY) -> date:
    try:
        return parse_day(value, week_start=week_start)
    except ValueError as e:
        raise SystemExit(str(e)) from e


def _parse_days(raw: str | None) -> frozenset[Weekday] | None:
    if raw is None:
        return None
    try:
        return parse_weekday_spec(raw)
    except ValueError as e:
        raise SystemExit(f"--days: {e}") from e


# -------------------------
# Formatting helpers
# -------------------------

def _sparkline(values: list[float], vmin: float = 0.0, vmax: float = 100.0) -> str:
    if not values:
        return ""
    blocks = "▁▂▃▄▅▆▇█"
    span = max(1e-9, vmax - vmin)
    out = []
    for v in values:
        x = (v - vmin) / span
        idx = int(round(x * (len(blocks) - 1)))
        idx = max(0, min(len(blocks) - 1, idx))
        out.append(blocks[idx])
    return "".join(out)


def _slots(completed: int, frequency: int) -> str:
    """Checkbox row for one habit, e.g. [x][x][ ] for 2 of 3."""
    boxes = "".join("[x]" if i < completed else "[ ]" for i in range(frequency))
    if completed > frequency:
        boxes += f" +{completed - frequency}"
    return boxes


def _pct(value: float) -> str:
    return f"{round(value)}%"


def _print_habit_line(habit: Habit, log: HabitLog | None) -> None:
    done = log.completed_count if log else 0
    mark = "✅" if done >= habit.frequency else "⬜"
    print(f"{mark} {habit.name}  {_slots(done, habit.frequency)}  "
          f"({done}/{habit.frequency}) [{habit.id[:8]}]")


def _tracker(args: argparse.Namespace) -> HabitTracker:
    return HabitTracker(HabitStore(args.data_path))


def _find(tracker: HabitTracker, ref: str) -> Habit:
    try:
        return tracker.find_habit(ref)
    except HabitNotFoundError as e:
        raise SystemExit(str(e)) from e


# -------------------------
# HABIT commands
# -------------------------

def cmd_habit_add(args: argparse.Namespace) -> None:
    tracker = _tracker(args)
    days = _parse_days(args.days)
    habit = tracker.save_habit(
        args.name,
        frequency=args.frequency,
        repeat_days=days if days is not None else frozenset(Weekday),
        color=args.color,
    )
    if habit is None:
        raise SystemExit("Habit name must not be empty.")
    print(f"➕ Added {habit.name!r} ({habit.frequency}x/day, "
          f"{format_weekdays(habit.repeat_days, tracker.settings.start_of_week)}) [{habit.id[:8]}]")


def cmd_habit_edit(args: argparse.Namespace) -> None:
    tracker = _tracker(args)
    habit = _find(tracker, args.habit)
    days = _parse_days(args.days)
    updated = tracker.save_habit(
        args.name if args.name is not None else habit.name,
        frequency=args.frequency if args.frequency is not None else habit.frequency,
        repeat_days=days if days is not None else habit.repeat_days,
        color=args.color if args.color is not None else habit.color,
        existing=habit,
    )
    if updated is None:
        raise SystemExit("Habit name must not be empty.")
    print(f"✏️ Updated {updated.name!r} [{updated.id[:8]}]")


def cmd_habit_list(args: argparse.Namespace) -> None:
    tracker = _tracker(args)
    if not tracker.habits:
        print("No habits yet. Add one with `habitsync habit add NAME`.")
        return

    week_start = tracker.settings.start_of_week
    print("=== Habits ===")
    for h in tracker.habits:
        print(f"- {h.name} [{h.id[:8]}]: {h.frequency}x/day, "
              f"{format_weekdays(h.repeat_days, week_start)}, color {h.color}")


def cmd_habit_delete(args: argparse.Namespace) -> None:
    tracker = _tracker(args)
    habit = _find(tracker, args.habit)

    if not args.yes:
        raise SystemExit(
            f"Refusing to delete {habit.name!r} without --yes "
            "(this removes the habit and all its completion history)."
        )

    removed = sum(1 for l in tracker.logs if l.habit_id == habit.id)
    tracker.delete_habit(habit.id)
    print(f"🗑️ Deleted {habit.name!r} and {removed} log entries.")


# -------------------------
# Daily commands
# -------------------------

def cmd_day(args: argparse.Namespace) -> None:
    tracker = _tracker(args)
    day = _parse_date(args.date, tracker.settings.start_of_week)
    label = relative_label(day, today())
    status = StatusFilter(args.filter)

    scheduled = tracker.scheduled_on(day)
    shown = tracker.scheduled_on(day, status)

    print(f"=== Tasks for {label} ({day.isoformat()}) ===")
    if scheduled:
        print(f"{len(scheduled)} scheduled")
    if not shown:
        if status is StatusFilter.COMPLETED:
            print(f"Nothing completed yet for {label}.")
        else:
            print(f"No {'' if status is StatusFilter.ALL else status.value + ' '}habits for {label}.")
        return

    for h in shown:
        _print_habit_line(h, tracker.log_for(h.id, day))


def cmd_toggle(args: argparse.Namespace) -> None:
    tracker = _tracker(args)
    habit = _find(tracker, args.habit)
    day = _parse_date(args.date, tracker.settings.start_of_week)

    try:
        log = tracker.toggle_slot(habit.id, day, args.slot - 1)
    except ValueError:
        raise SystemExit(f"SLOT must be between 1 and {habit.frequency} for {habit.name!r}") from None

    print(f"{habit.name} on {day.isoformat()}: {_slots(log.completed_count, habit.frequency)} "
          f"({log.completed_count}/{habit.frequency})")


def cmd_stats(args: argparse.Namespace) -> None:
    tracker = _tracker(args)
    day = _parse_date(args.date, tracker.settings.start_of_week)

    if not tracker.habits:
        print("No habits found. Create some habits to start seeing your progress.")
        return

    daily = tracker.daily_stats(day)
    monthly = tracker.monthly_stats()
    weekly = tracker.weekly_stats(day)
    shares = tracker.distribution()

    print(f"=== Stats ({relative_label(day, today())}, {day.isoformat()}) ===")
    print("\n[Daily]")
    print(f"- completed: {daily.total_completed}/{daily.total_target} ({_pct(daily.percentage)})")

    print("\n[Month]")
    print(f"- active days: {monthly.total_days_completed}")

    print("\n[Week]")
    print(f"- {_pct(weekly.percentage)} completed "
          f"({weekly.total_completed}/{weekly.total_target})")
    for p in weekly.days:
        width = 20
        bar = "█" * round(width * p.completed / weekly.max_day_value)
        marker = " <" if p.day == today() else ""
        print(f"{p.label} {p.day.isoformat()} {p.completed:>3}/{p.target:<3} {bar}{marker}")
    print(f"- sparkline: {_sparkline([p.completed for p in weekly.days], 0, weekly.max_day_value)}")

    print("\n[Distribution]")
    if not shares:
        print("No completions yet.")
    for s in shares:
        print(f"- {s.name}: {s.count} ({s.percentage:.1f}%)")


def cmd_summary(args: argparse.Namespace) -> None:
    tracker = _tracker(args)
    day = _parse_date(args.date, tracker.settings.start_of_week)
    label = relative_label(day, today())

    print("=================")
    print(f"Hello, {tracker.settings.user_name}")
    print("=================\n")

    daily = tracker.daily_stats(day)
    monthly = tracker.monthly_stats()
    print(f"[{label.upper()}]")
    print(f"- {_pct(daily.percentage)} done ({daily.total_completed}/{daily.total_target})")
    print(f"- {monthly.total_days_completed} active days this month\n")

    scheduled = tracker.scheduled_on(day)
    if not scheduled:
        print("No tasks scheduled.")
        return
    for h in scheduled:
        _print_habit_line(h, tracker.log_for(h.id, day))


# -------------------------
# Settings + data commands
# -------------------------

def cmd_settings_show(args: argparse.Namespace) -> None:
    s = _tracker(args).settings
    print("=== Settings ===")
    print(f"- name: {s.user_name}")
    print(f"- theme: {s.theme.value}")
    print(f"- week starts on: {s.start_of_week.name.title()}")


def cmd_settings_set(args: argparse.Namespace) -> None:
    tracker = _tracker(args)
    start = None
    if args.start_of_week is not None:
        start = Weekday.SUNDAY if args.start_of_week == "sunday" else Weekday.MONDAY
    name = args.name.strip() if args.name is not None else None
    if name == "":
        raise SystemExit("--name must not be empty")

    s = tracker.update_settings(user_name=name, theme=args.theme, start_of_week=start)
    print(f"⚙️ Saved settings: name={s.user_name!r}, theme={s.theme.value}, "
          f"week starts {s.start_of_week.name.title()}")


def cmd_export(args: argparse.Namespace) -> None:
    store = HabitStore(args.data_path)
    snapshot = store.export_data()

    out = args.out or f"habitsync_backup_{today().isoformat()}.json"
    out_path = Path(out).expanduser().resolve()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(snapshot, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")

    logger.info("Exported snapshot to %s", out_path)
    print(f"📦 Exported {len(snapshot['habits'])} habits and {len(snapshot['logs'])} logs → {out_path}")


def cmd_import(args: argparse.Namespace) -> None:
    src = Path(args.file).expanduser()
    try:
        raw = src.read_text(encoding="utf-8")
    except OSError as e:
        raise SystemExit(f"Could not read {src}: {e}") from e

    tracker = _tracker(args)
    if not tracker.import_data(raw):
        raise SystemExit("Failed to import data. Please check the file format.")
    print(f"📥 Imported {src}: {len(tracker.habits)} habits, {len(tracker.logs)} logs.")


def cmd_clear(args: argparse.Namespace) -> None:
    if not args.yes:
        raise SystemExit("Refusing to clear without --yes (this deletes all habits and history).")

    tracker = _tracker(args)
    before = (len(tracker.habits), len(tracker.logs))
    tracker.clear_all_data()
    print(f"🧹 Cleared {before[0]} habits and {before[1]} logs. Settings were kept.")


# -------------------------
# Core commands
# -------------------------

def cmd_init(args: argparse.Namespace) -> None:
    store = HabitStore(args.data_path)
    if SETTINGS_KEY not in store.kv:
        store.save_settings(store.get_settings())
    print(f"✅ Initialized data file: {args.data_path}")


def cmd_where(args: argparse.Namespace) -> None:
    print(args.data_path)
    print(f"↳ using {describe_source(args.data_arg, args.profile)}")


def cmd_doctor(args: argparse.Namespace) -> None:
    print("=== HabitSync Doctor ===")

    assert_safe_data_path(args.data_path, args.allow_repo_data_path)
    print("✅ Data path safety guard: OK")

    # inspect the raw file first; reading through the store creates or resets it
    try:
        perms = stat.S_IMODE(args.data_path.stat().st_mode)
    except FileNotFoundError:
        print("⚠️ Data file missing (run `habitsync init`)")
        print("=== Done ===")
        return
    print(f"🔐 File permissions: {oct(perms)} (target 0o600)")

    txt = args.data_path.read_text(encoding="utf-8").strip()
    try:
        data = json.loads(txt) if txt else {}
    except json.JSONDecodeError as e:
        print(f"⚠️ JSON unreadable ({e}); it will be backed up and reset on next use")
        print("=== Done ===")
        return
    if not isinstance(data, dict):
        print(f"⚠️ JSON holds a {type(data).__name__}, expected an object")
        print("=== Done ===")
        return
    print("✅ JSON readable: OK")

    store = HabitStore(args.data_path)
    habits = store.get_habits()
    logs = store.get_logs()
    print(f"📋 {len(habits)} habits, {len(logs)} logs")

    try:
        LogIndex(logs)
        print("✅ One log per habit and day: OK")
    except DuplicateLogError as e:
        print(f"⚠️ {e}")

    known = {h.id for h in habits}
    orphans = sum(1 for l in logs if l.habit_id not in known)
    if orphans:
        print(f"⚠️ {orphans} logs point at habits that no longer exist")

    print("=== Done ===")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="habitsync", description="HabitSync habit tracker")
    p.add_argument("--data", default=None, help="Path to data JSON (overrides env/default)")
    p.add_argument("--profile", default=None, help="Profile name (e.g. dev/test)")
    p.add_argument("--allow-repo-data-path", action="store_true", help="Override safety guard (not recommended)")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = p.add_subparsers(dest="cmd", required=True)
    sub.add_parser("init", help="Initialize data store safely").set_defaults(func=cmd_init)
    sub.add_parser("where", help="Show which data file is active and why").set_defaults(func=cmd_where)
    sub.add_parser("doctor", help="Run safety + health checks").set_defaults(func=cmd_doctor)

    summary = sub.add_parser("summary", help="Show today's dashboard")
    summary.add_argument("--date", default=None, help="ISO date, today/yesterday, '3 days ago', or a weekday")
    summary.set_defaults(func=cmd_summary)

    # ---- habit ----
    habit = sub.add_parser("habit", help="Create, edit and delete habits")
    habit_sub = habit.add_subparsers(dest="habit_cmd", required=True)

    habit_add = habit_sub.add_parser("add", help="Add a habit")
    habit_add.add_argument("name")
    habit_add.add_argument("--frequency", type=int, choices=range(1, 6), default=1,
                           help="Completions per scheduled day (1–5)")
    habit_add.add_argument("--days", default=None,
                           help="daily, weekdays, weekends, none, or a list like mon,wed,fri (default daily)")
    habit_add.add_argument("--color", default=DEFAULT_COLORS[0], help="Accent color token")
    habit_add.set_defaults(func=cmd_habit_add)

    habit_edit = habit_sub.add_parser("edit", help="Edit a habit (by name or id)")
    habit_edit.add_argument("habit")
    habit_edit.add_argument("--name", default=None)
    habit_edit.add_argument("--frequency", type=int, choices=range(1, 6), default=None)
    habit_edit.add_argument("--days", default=None)
    habit_edit.add_argument("--color", default=None)
    habit_edit.set_defaults(func=cmd_habit_edit)

    habit_sub.add_parser("list", help="List all habits").set_defaults(func=cmd_habit_list)

    habit_delete = habit_sub.add_parser("delete", help="Delete a habit and its history (requires --yes)")
    habit_delete.add_argument("habit")
    habit_delete.add_argument("--yes", action="store_true", help="Confirm destructive delete")
    habit_delete.set_defaults(func=cmd_habit_delete)

    # ---- daily ----
    day = sub.add_parser("day", help="List habits scheduled on a date")
    day.add_argument("--date", default=None, help="ISO date, today/yesterday, '3 days ago', or a weekday")
    day.add_argument("--filter", choices=[s.value for s in StatusFilter], default="all")
    day.set_defaults(func=cmd_day)

    toggle = sub.add_parser("toggle", help="Toggle a completion slot (1-based)")
    toggle.add_argument("habit")
    toggle.add_argument("slot", type=int)
    toggle.add_argument("--date", default=None)
    toggle.set_defaults(func=cmd_toggle)

    stats = sub.add_parser("stats", help="Daily, weekly and monthly completion stats")
    stats.add_argument("--date", default=None)
    stats.set_defaults(func=cmd_stats)

    # ---- settings ----
    settings = sub.add_parser("settings", help="User preferences")
    settings_sub = settings.add_subparsers(dest="settings_cmd", required=True)
    settings_sub.add_parser("show", help="Show settings").set_defaults(func=cmd_settings_show)
    settings_set = settings_sub.add_parser("set", help="Change settings")
    settings_set.add_argument("--name", default=None)
    settings_set.add_argument("--theme", choices=[t.value for t in Theme], default=None)
    settings_set.add_argument("--start-of-week", dest="start_of_week", choices=["sunday", "monday"], default=None)
    settings_set.set_defaults(func=cmd_settings_set)

    # ---- data ----
    export = sub.add_parser("export", help="Write a JSON backup")
    export.add_argument("--out", default=None, help="Output path (default habitsync_backup_<date>.json)")
    export.set_defaults(func=cmd_export)

    imp = sub.add_parser("import", help="Restore from a JSON backup")
    imp.add_argument("file")
    imp.set_defaults(func=cmd_import)

    clear = sub.add_parser("clear", help="Delete ALL habits and logs, keep settings (requires --yes)")
    clear.add_argument("--yes", action="store_true", help="Confirm destructive reset")
    clear.set_defaults(func=cmd_clear)

    return p


def main(argv=None) -> None:
    p = build_parser()
    args = p.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    args.data_arg = args.data
    args.data_path = resolve_data_path(args.data, args.profile)

    try:
        assert_safe_data_path(args.data_path, args.allow_repo_data_path)
        args.func(args)
    except (UnsafeDataPathError, DuplicateLogError) as e:
        raise SystemExit(f"🚫 {e}") from e


if __name__ == "__main__":
    main()
