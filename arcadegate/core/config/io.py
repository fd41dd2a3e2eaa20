from __future__ import annotations

import contextlib
import json
import os
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from arcadegate.core.config.paths import ConfigFsPaths


class FileState(str, Enum):
    OK = "ok"
    MISSING = "missing"
    CORRUPT = "corrupt"


def _stamp() -> str:
    # sortable, and distinct for writes within the same second
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")


@dataclass(frozen=True)
class ConfigFile:
    """
    authority.json with its rolling backups and last-known-good copy.

    Writes go through a temp file and `os.replace`, after a "prewrite" backup
    of whatever was there. A corrupt file is moved aside, never overwritten in
    place.
    """

    path: str
    backups_dir: str
    last_known_good_dir: str
    max_backups: int = 10

    @classmethod
    def for_paths(cls, fs: ConfigFsPaths, *, max_backups: int = 10) -> "ConfigFile":
        return cls(path=fs.authority, backups_dir=fs.backups_dir, last_known_good_dir=fs.last_known_good_dir, max_backups=int(max_backups))

    @property
    def name(self) -> str:
        return os.path.basename(self.path)

    @property
    def last_known_good(self) -> str:
        return os.path.join(self.last_known_good_dir, self.name)

    def read(self) -> Tuple[FileState, Dict[str, Any]]:
        return _read_object(self.path)

    def write(self, data: Dict[str, Any]) -> None:
        folder = os.path.dirname(self.path) or "."
        os.makedirs(folder, exist_ok=True)
        self._backup("prewrite")
        fd, tmp = tempfile.mkstemp(prefix=f".{self.name}.", suffix=".tmp", dir=folder)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False, sort_keys=True)
                f.write("\n")
            os.replace(tmp, self.path)
        except BaseException:
            with contextlib.suppress(OSError):
                os.remove(tmp)
            raise

    def quarantine(self) -> Optional[str]:
        """Move an unreadable file into backups as `<name>.<stamp>.corrupt.json`."""
        if not os.path.exists(self.path):
            return None
        os.makedirs(self.backups_dir, exist_ok=True)
        dest = os.path.join(self.backups_dir, f"{self.name}.{_stamp()}.corrupt.json")
        shutil.move(self.path, dest)
        return dest

    def read_last_known_good(self) -> Tuple[FileState, Dict[str, Any]]:
        return _read_object(self.last_known_good)

    def restore_last_known_good(self) -> Optional[Dict[str, Any]]:
        state, data = self.read_last_known_good()
        if state is not FileState.OK:
            return None
        self.write(data)
        return data

    def remember_good(self) -> None:
        if os.path.isfile(self.path):
            os.makedirs(self.last_known_good_dir, exist_ok=True)
            shutil.copy2(self.path, self.last_known_good)

    def backups(self) -> List[str]:
        """Backup file names, newest first."""
        if not os.path.isdir(self.backups_dir):
            return []
        return sorted((f for f in os.listdir(self.backups_dir) if f.startswith(f"{self.name}.")), reverse=True)

    def _backup(self, reason: str) -> None:
        if not os.path.isfile(self.path):
            return
        os.makedirs(self.backups_dir, exist_ok=True)
        shutil.copy2(self.path, os.path.join(self.backups_dir, f"{self.name}.{_stamp()}.{reason}.json"))
        for old in self.backups()[self.max_backups :]:
            with contextlib.suppress(OSError):
                os.remove(os.path.join(self.backups_dir, old))


def _read_object(path: str) -> Tuple[FileState, Dict[str, Any]]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            obj = json.load(f)
    except FileNotFoundError:
        return FileState.MISSING, {}
    except (json.JSONDecodeError, UnicodeDecodeError):
        return FileState.CORRUPT, {}
    if not isinstance(obj, dict):
        return FileState.CORRUPT, {}
    return FileState.OK, obj
