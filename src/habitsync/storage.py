from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def load_json(path: Path) -> dict[str, Any]:
    """
    Safe load:
    - creates parent dirs
    - if missing/empty -> writes {}
    - if corrupt -> backs up raw text then resets to {}
    Always returns a dict.
    """
    path = Path(path)
    _ensure_parent(path)

    if not path.exists():
        save_json(path, {})
        return {}

    txt = path.read_text(encoding="utf-8").strip()
    if not txt:
        save_json(path, {})
        return {}

    try:
        data = json.loads(txt)
    except json.JSONDecodeError:
        backup = path.with_suffix(f".corrupt-{int(time.time())}.json")
        backup.write_text(txt, encoding="utf-8")
        logger.warning("Corrupt data file %s, backed up to %s", path, backup)
        save_json(path, {})
        return {}

    if not isinstance(data, dict):
        logger.warning("Data file %s does not hold a JSON object, ignoring it", path)
        return {}
    return data


def save_json(path: Path, data: Any) -> None:
    """
    Atomic-ish save:
    - write to temp file in same directory
    - flush + fsync
    - os.replace to target
    - chmod 0600 best-effort
    """
    path = Path(path)
    _ensure_parent(path)

    tmp = path.with_name(path.name + ".tmp")

    payload = json.dumps(
        data,
        indent=2,
        sort_keys=True,
        ensure_ascii=False,
    ) + "\n"

    with open(tmp, "w", encoding="utf-8") as f:
        f.write(payload)
        f.flush()
        os.fsync(f.fileno())

    os.replace(tmp, path)
    logger.debug("Wrote %d bytes to %s", len(payload), path)

    try:
        os.chmod(path, 0o600)
    except OSError:
        pass


class KeyValueFile:
    """
    A tiny key-value store persisted as one JSON object file.

    Every ``set``/``remove`` re-reads the file and writes it back before
    returning, so the file is always the source of truth.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def get(self, key: str, default: Any = None) -> Any:
        return load_json(self.path).get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.update({key: value})

    def update(self, values: dict[str, Any]) -> None:
        """Write several keys in one file replace."""
        data = load_json(self.path)
        data.update(values)
        save_json(self.path, data)

    def remove(self, *keys: str) -> None:
        data = load_json(self.path)
        changed = False
        for key in keys:
            if key in data:
                del data[key]
                changed = True
        if changed:
            save_json(self.path, data)

    def __contains__(self, key: str) -> bool:
        return key in load_json(self.path)
