"""End-to-end tests for the habitsync command line."""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from habitsync.cli import main
from habitsync.store import HabitStore


TODAY = date(2026, 10, 19)


@pytest.fixture(autouse=True)
def fixed_today(monkeypatch):
    for module in ("habitsync.dates", "habitsync.cli", "habitsync.tracker"):
        monkeypatch.setattr(f"{module}.today", lambda: TODAY)


@pytest.fixture()
def data_path(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.delenv("HABITSYNC_DATA", raising=False)
    return tmp_path / "data.json"


def run(data_path: Path, *argv: str) -> None:
    main(["--data", str(data_path), *argv])


def test_where_reports_data_flag(data_path, capsys):
    run(data_path, "where")
    out = capsys.readouterr().out
    assert str(data_path) in out
    assert "--data" in out


def test_where_uses_env(tmp_path, monkeypatch, capsys):
    target = tmp_path / "env.json"
    monkeypatch.setenv("HABITSYNC_DATA", str(target))
    main(["where"])
    out = capsys.readouterr().out
    assert str(target) in out
    assert "HABITSYNC_DATA" in out


def test_init_writes_default_settings(data_path):
    run(data_path, "init")
    raw = json.loads(data_path.read_text())
    assert raw["habitsync_settings"]["userName"] == "User"


def test_add_list_and_toggle(data_path, capsys):
    run(data_path, "habit", "add", "Water", "--frequency", "3", "--days", "daily")
    run(data_path, "toggle", "water", "2", "--date", "2026-10-21")
    capsys.readouterr()

    run(data_path, "day", "--date", "2026-10-21")
    out = capsys.readouterr().out
    assert "Water" in out
    assert "[x][x][ ]" in out
    assert "(2/3)" in out

    logs = HabitStore(data_path).get_logs()
    assert [(l.date, l.completed_count) for l in logs] == [("2026-10-21", 2)]


def test_add_empty_name_fails(data_path):
    with pytest.raises(SystemExit):
        run(data_path, "habit", "add", "   ")
    assert HabitStore(data_path).get_habits() == []


def test_toggle_bad_slot(data_path):
    run(data_path, "habit", "add", "Read")
    with pytest.raises(SystemExit):
        run(data_path, "toggle", "Read", "2")


def test_toggle_unknown_habit(data_path):
    with pytest.raises(SystemExit):
        run(data_path, "toggle", "Nope", "1")


def test_day_filter_pending(data_path, capsys):
    run(data_path, "habit", "add", "Read")
    run(data_path, "habit", "add", "Run")
    run(data_path, "toggle", "Read", "1", "--date", "2026-10-21")
    capsys.readouterr()

    run(data_path, "day", "--date", "2026-10-21", "--filter", "pending")
    out = capsys.readouterr().out
    assert "Run" in out
    assert "Read" not in out


def test_edit_changes_schedule(data_path, capsys):
    run(data_path, "habit", "add", "Gym")
    run(data_path, "habit", "edit", "Gym", "--days", "sat,sun", "--frequency", "2")
    capsys.readouterr()

    habit = HabitStore(data_path).get_habits()[0]
    assert habit.frequency == 2
    assert sorted(habit.repeat_days) == [0, 6]

    run(data_path, "day", "--date", "2026-10-21")
    assert "No habits for" in capsys.readouterr().out


def test_delete_requires_yes(data_path):
    run(data_path, "habit", "add", "Read")
    with pytest.raises(SystemExit):
        run(data_path, "habit", "delete", "Read")
    assert len(HabitStore(data_path).get_habits()) == 1

    run(data_path, "habit", "delete", "Read", "--yes")
    assert HabitStore(data_path).get_habits() == []


def test_stats_output(data_path, capsys):
    run(data_path, "habit", "add", "Read")
    run(data_path, "habit", "add", "Water", "--frequency", "3")
    run(data_path, "toggle", "Read", "1", "--date", "2026-10-21")
    capsys.readouterr()

    run(data_path, "stats", "--date", "2026-10-21")
    out = capsys.readouterr().out
    assert "- completed: 1/4 (25%)" in out
    assert "- active days: 1" in out
    assert "- Read: 1 (100.0%)" in out


def test_stats_without_habits(data_path, capsys):
    run(data_path, "stats")
    assert "No habits found" in capsys.readouterr().out


def test_settings_set_and_show(data_path, capsys):
    run(data_path, "settings", "set", "--name", "Ana", "--theme", "dark", "--start-of-week", "sunday")
    capsys.readouterr()
    run(data_path, "settings", "show")
    out = capsys.readouterr().out
    assert "name: Ana" in out
    assert "theme: dark" in out
    assert "Sunday" in out


def test_export_import_roundtrip(data_path, tmp_path):
    run(data_path, "habit", "add", "Read")
    run(data_path, "toggle", "Read", "1", "--date", "2026-10-21")
    backup = tmp_path / "backup.json"
    run(data_path, "export", "--out", str(backup))

    snap = json.loads(backup.read_text())
    assert snap["version"] == "1.2"

    other = tmp_path / "other.json"
    run(other, "import", str(backup))
    assert HabitStore(other).get_habits() == HabitStore(data_path).get_habits()
    assert HabitStore(other).get_logs() == HabitStore(data_path).get_logs()


def test_import_bad_file_fails_without_changes(data_path, tmp_path):
    run(data_path, "habit", "add", "Read")
    bad = tmp_path / "bad.json"
    bad.write_text("{ not json", encoding="utf-8")

    with pytest.raises(SystemExit):
        run(data_path, "import", str(bad))
    assert len(HabitStore(data_path).get_habits()) == 1


def test_clear_keeps_settings(data_path):
    run(data_path, "settings", "set", "--name", "Ana")
    run(data_path, "habit", "add", "Read")
    with pytest.raises(SystemExit):
        run(data_path, "clear")

    run(data_path, "clear", "--yes")
    store = HabitStore(data_path)
    assert store.get_habits() == []
    assert store.get_settings().user_name == "Ana"


def test_refuses_data_path_inside_git_repo(tmp_path):
    (tmp_path / ".git").mkdir()
    with pytest.raises(SystemExit):
        main(["--data", str(tmp_path / "data.json"), "habit", "list"])


def test_allow_repo_data_path_override(tmp_path, capsys):
    (tmp_path / ".git").mkdir()
    main(["--data", str(tmp_path / "data.json"), "--allow-repo-data-path", "habit", "list"])
    assert "No habits yet" in capsys.readouterr().out


def test_doctor_reports_counts(data_path, capsys):
    run(data_path, "habit", "add", "Read")
    capsys.readouterr()
    run(data_path, "doctor")
    out = capsys.readouterr().out
    assert "1 habits, 0 logs" in out
    assert "One log per habit and day: OK" in out


def test_month_count_is_for_current_month_whatever_the_date(data_path, capsys):
    run(data_path, "habit", "add", "Read")
    run(data_path, "toggle", "Read", "1", "--date", "2026-10-17")
    run(data_path, "toggle", "Read", "1", "--date", "2026-10-18")
    capsys.readouterr()

    run(data_path, "summary", "--date", "2026-09-30")
    assert "- 2 active days this month" in capsys.readouterr().out

    run(data_path, "stats", "--date", "2026-09-30")
    assert "- active days: 2" in capsys.readouterr().out


def test_weekday_date_follows_start_of_week(data_path, capsys):
    run(data_path, "habit", "add", "Read")
    run(data_path, "toggle", "Read", "1", "--date", "sun")
    run(data_path, "settings", "set", "--start-of-week", "sunday")
    run(data_path, "toggle", "Read", "1", "--date", "sun")

    logs = HabitStore(data_path).get_logs()
    assert sorted(l.date for l in logs) == ["2026-10-18", "2026-10-25"]


def test_doctor_missing_file_is_not_created(data_path, capsys):
    run(data_path, "doctor")
    out = capsys.readouterr().out
    assert "Data file missing" in out
    assert "JSON readable" not in out
    assert not data_path.exists()


def test_doctor_reports_corrupt_json(data_path, capsys):
    data_path.write_text("{not json", encoding="utf-8")
    run(data_path, "doctor")
    out = capsys.readouterr().out
    assert "JSON unreadable" in out
    assert "JSON readable: OK" not in out
    assert data_path.read_text(encoding="utf-8") == "{not json"
