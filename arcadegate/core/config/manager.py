from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import ValidationError

from arcadegate.core.config.io import ConfigFile, FileState
from arcadegate.core.config.models import AuthorityConfig, default_config_dict
from arcadegate.core.config.paths import ConfigFsPaths
from arcadegate.core.errors import ConfigError


class ConfigManager:
    def __init__(self, *, fs: Optional[ConfigFsPaths] = None, logger=None, read_only: bool = False, max_backups: int = 10):
        self.fs = fs or ConfigFsPaths(".")
        self.logger = logger
        self.read_only = read_only
        self.file = ConfigFile.for_paths(self.fs, max_backups=max_backups)
        self._cfg: Optional[AuthorityConfig] = None

    # ---------- public API ----------
    def load(self) -> AuthorityConfig:
        try:
            raw = self._read_raw()
        except OSError as e:
            raise ConfigError("Config unreadable.", path=self.file.path, error=str(e)) from e
        cfg = self._validate(raw)
        self._cfg = cfg

        if not self.read_only:
            self.file.remember_good()
        return cfg

    def get(self) -> AuthorityConfig:
        if self._cfg is None:
            raise ConfigError("Config not loaded.")
        return self._cfg

    def save(self, data: Dict[str, Any]) -> AuthorityConfig:
        """
        Validate first, then atomic write + backup.
        """
        if self.read_only:
            raise ConfigError("Config manager is read-only.")
        cfg = self._validate(data)
        self.file.write(cfg.model_dump(mode="json"))
        self._cfg = cfg
        return cfg

    # ---------- internals ----------
    def _read_raw(self) -> Dict[str, Any]:
        state, data = self.file.read()
        if state is FileState.OK:
            return data

        if state is FileState.MISSING:
            data = default_config_dict()
            if not self.read_only:
                self.file.write(data)
                self._info(f"Wrote default config: {self.file.path}")
            return data

        # corrupt: read-only callers never touch the files
        if self.read_only:
            state, lkg = self.file.read_last_known_good()
            return lkg if state is FileState.OK else default_config_dict()
        moved = self.file.quarantine()
        restored = self.file.restore_last_known_good()
        if restored is not None:
            self._warn(f"Config corrupt (moved to {moved}); restored last known good.")
            return restored
        data = default_config_dict()
        self.file.write(data)
        self._warn(f"Config corrupt (moved to {moved}); no last known good, wrote defaults.")
        return data

    def _validate(self, raw: Dict[str, Any]) -> AuthorityConfig:
        try:
            return AuthorityConfig.model_validate(raw)
        except ValidationError as e:
            raise ConfigError("Configuration invalid.", errors=[err.get("msg") for err in e.errors()]) from e

    def _info(self, msg: str) -> None:
        if self.logger:
            self.logger.info(msg)

    def _warn(self, msg: str) -> None:
        if self.logger:
            self.logger.warning(msg)
