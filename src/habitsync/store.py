from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, TypeVar

from .models import Habit, HabitLog, UserSettings, ValidationError
from .schedule import DuplicateLogError, LogIndex
from .storage import KeyValueFile

logger = logging.getLogger(__name__)

HABITS_KEY = "habitsync_habits"
LOGS_KEY = "habitsync_logs"
SETTINGS_KEY = "habitsync_settings"

EXPORT_VERSION = "1.2"

T = TypeVar("T")


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _decode_list(raw: Any, decode: Callable[[Any], T], what: str) -> list[T]:
    if not isinstance(raw, list):
        raise ValidationError(f"{what} must be a list, got {type(raw).__name__}")
    return [decode(item) for item in raw]


class HabitStore:
    """
    Habits, logs and settings persisted in one JSON key-value file.

    Reads never raise on bad data: an unreadable collection is copied to a
    backup file and reported as empty. Writes go straight to disk before
    returning.
    """

    def __init__(self, path: Path) -> None:
        self.kv = KeyValueFile(path)

    @property
    def path(self) -> Path:
        return self.kv.path

    # -------------------------
    # Habits
    # -------------------------

    def get_habits(self) -> list[Habit]:
        return self._read_list(HABITS_KEY, Habit.from_dict, "habits")

    def save_habit(self, habit: Habit) -> None:
        habits = self.get_habits()
        for i, h in enumerate(habits):
            if h.id == habit.id:
                habits[i] = habit
                break
        else:
            habits.append(habit)
        self.kv.set(HABITS_KEY, [h.to_dict() for h in habits])

    def delete_habit(self, habit_id: str) -> None:
        habits = [h for h in self.get_habits() if h.id != habit_id]
        logs = [l for l in self.get_logs() if l.habit_id != habit_id]
        # one file replace covers both collections
        self.kv.update(
            {
                HABITS_KEY: [h.to_dict() for h in habits],
                LOGS_KEY: [l.to_dict() for l in logs],
            }
        )
        logger.info("Deleted habit %s and its logs", habit_id)

    # -------------------------
    # Logs
    # -------------------------

    def get_logs(self) -> list[HabitLog]:
        return self._read_list(LOGS_KEY, HabitLog.from_dict, "logs")

    def save_log(self, log: HabitLog) -> None:
        logs = self.get_logs()
        for i, l in enumerate(logs):
            if l.key == log.key:
                logs[i] = log
                break
        else:
            logs.append(log)
        self.kv.set(LOGS_KEY, [l.to_dict() for l in logs])

    # -------------------------
    # Settings
    # -------------------------

    def get_settings(self) -> UserSettings:
        raw = self.kv.get(SETTINGS_KEY)
        if raw is None:
            return UserSettings()
        if not isinstance(raw, dict):
            logger.warning("Ignoring unreadable settings in %s: not an object", self.path)
            return UserSettings()

        # a bad field falls back to its default without dropping the others
        kept = {}
        for key in UserSettings().to_dict():
            if key not in raw:
                continue
            try:
                UserSettings.from_dict({key: raw[key]})
            except ValidationError as e:
                logger.warning("Ignoring unreadable setting %s in %s: %s", key, self.path, e)
                continue
            kept[key] = raw[key]
        return UserSettings.from_dict(kept)

    def save_settings(self, settings: UserSettings) -> None:
        self.kv.set(SETTINGS_KEY, settings.to_dict())

    # -------------------------
    # Bulk
    # -------------------------

    def export_data(self) -> dict[str, Any]:
        return {
            "habits": [h.to_dict() for h in self.get_habits()],
            "logs": [l.to_dict() for l in self.get_logs()],
            "settings": self.get_settings().to_dict(),
            "version": EXPORT_VERSION,
            "exportedAt": _utc_now_iso(),
        }

    def import_data(self, raw: str) -> bool:
        """
        Replace the collections present in a JSON snapshot.

        Every present collection is validated before anything is written, so
        a failed import leaves the store exactly as it was.
        """
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValidationError("snapshot must be a JSON object")

            updates: dict[str, Any] = {}
            if data.get("habits") is not None:
                habits = _decode_list(data["habits"], Habit.from_dict, "habits")
                if len({h.id for h in habits}) != len(habits):
                    raise ValidationError("snapshot has duplicate habit ids")
                updates[HABITS_KEY] = [h.to_dict() for h in habits]
            if data.get("logs") is not None:
                logs = _decode_list(data["logs"], HabitLog.from_dict, "logs")
                LogIndex(logs)
                updates[LOGS_KEY] = [l.to_dict() for l in logs]
            if data.get("settings") is not None:
                updates[SETTINGS_KEY] = UserSettings.from_dict(data["settings"]).to_dict()
        except (json.JSONDecodeError, ValidationError, DuplicateLogError, TypeError) as e:
            logger.warning("Import failed: %s", e)
            return False

        if updates:
            self.kv.update(updates)
        logger.info("Imported %s", ", ".join(sorted(updates)) or "nothing")
        return True

    def clear_all_data(self) -> None:
        # settings survive a reset
        self.kv.remove(HABITS_KEY, LOGS_KEY)
        logger.info("Cleared habits and logs in %s", self.path)

    def _read_list(self, key: str, decode: Callable[[Any], T], what: str) -> list[T]:
        raw = self.kv.get(key)
        if raw is None:
            return []
        try:
            return _decode_list(raw, decode, what)
        except (ValidationError, TypeError) as e:
            backup = self._backup_unreadable(what, raw)
            logger.warning("Ignoring unreadable %s in %s (%s), backed up to %s", what, self.path, e, backup)
            return []

    def _backup_unreadable(self, what: str, raw: Any) -> Path:
        """
        Copy an unreadable collection next to the data file before a later
        write replaces it. Identical content is backed up only once.
        """
        txt = json.dumps(raw, indent=2, sort_keys=True, ensure_ascii=False) + "\n"
        for old in sorted(self.path.parent.glob(f"{self.path.stem}.{what}-corrupt-*.json")):
            if old.read_text(encoding="utf-8") == txt:
                return old
        backup = self.path.with_suffix(f".{what}-corrupt-{int(time.time())}.json")
        backup.write_text(txt, encoding="utf-8")
        return backup
