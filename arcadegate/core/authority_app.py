from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Optional

from arcadegate.core.admin.coordinator import SessionCoordinator
from arcadegate.core.admin.directory import AdminDirectory
from arcadegate.core.config.models import AuthorityConfig
from arcadegate.core.config.paths import ConfigFsPaths
from arcadegate.core.error_reporter import ErrorReporter
from arcadegate.core.events import EventBus, EventLogger
from arcadegate.core.guards import GuardDecision, require_admin, require_authenticated, require_game_access
from arcadegate.core.licensing.authority import LicenseAuthority
from arcadegate.core.licensing.session import Session
from arcadegate.core.security import PasswordHasher
from arcadegate.core.store.base import RecordStore
from arcadegate.core.store.bootstrap import BootstrapResult, bootstrap_store
from arcadegate.core.store.memory import MemoryRecordStore
from arcadegate.core.store.sqlite import SqliteRecordStore


@dataclass
class AuthorityApp:
    """
    Wired License & Admin Authority.

    Building one is a cold start. `open()` re-derives a live admin session
    from the store; otherwise the session stays empty until a login.
    """

    cfg: AuthorityConfig
    store: RecordStore
    event_bus: EventBus
    session: Session
    authority: LicenseAuthority
    coordinator: SessionCoordinator
    directory: AdminDirectory
    logger: Any = None
    bootstrap: Optional[BootstrapResult] = None

    @classmethod
    async def open(
        cls,
        cfg: Optional[AuthorityConfig] = None,
        *,
        fs: Optional[ConfigFsPaths] = None,
        store: Optional[RecordStore] = None,
        logger: Any = None,
        error_reporter: Optional[ErrorReporter] = None,
    ) -> "AuthorityApp":
        cfg = cfg or AuthorityConfig()
        fs = fs or ConfigFsPaths(".")
        logger = logger or logging.getLogger("arcadegate")
        if store is None:
            store = _make_store(cfg, fs, logger)
        if error_reporter is None:
            error_reporter = ErrorReporter(path=fs.resolve(cfg.logging.errors_path))

        bus = EventBus(logger=logger)
        if cfg.logging.log_events:
            bus.subscribe("*", EventLogger(path=fs.resolve(cfg.logging.events_path)), priority=90)

        hasher = PasswordHasher(n=cfg.security.kdf_n, r=cfg.security.kdf_r, p=cfg.security.kdf_p)
        session = Session(logger=logger)
        authority = LicenseAuthority(
            store=store,
            session=session,
            event_bus=bus,
            logger=logger,
            error_reporter=error_reporter,
            enforce_expiration=cfg.licensing.enforce_expiration,
        )
        coordinator = SessionCoordinator(store=store, sink=authority, event_bus=bus, logger=logger)
        directory = AdminDirectory(
            store=store,
            sink=authority,
            coordinator=coordinator,
            hasher=hasher,
            licensing=cfg.licensing,
            event_bus=bus,
            logger=logger,
            error_reporter=error_reporter,
        )

        boot = None
        if cfg.bootstrap.enabled:
            boot = await bootstrap_store(store, cfg=cfg.bootstrap, hasher=hasher, logger=logger)
        await directory.reload()
        # a persisted admin session survives the restart
        await coordinator.ensure_session_restored()
        return cls(
            cfg=cfg,
            store=store,
            event_bus=bus,
            session=session,
            authority=authority,
            coordinator=coordinator,
            directory=directory,
            logger=logger,
            bootstrap=boot,
        )

    async def close(self) -> None:
        await self.store.close()

    # ---- boundary operations for route/UI collaborators ----
    async def login(self, key: str) -> bool:
        return await self.authority.login(key)

    def logout(self) -> None:
        self.authority.logout()

    async def login_admin(self, username: str, password: str) -> bool:
        return await self.directory.login_admin(username, password)

    async def logout_admin(self) -> None:
        await self.directory.logout_admin()

    def is_authenticated(self) -> bool:
        return self.authority.is_authenticated()

    def is_admin_logged_in(self) -> bool:
        return self.directory.is_admin_logged_in()

    def has_game_access(self, game_id: str) -> bool:
        return self.authority.has_game_access(game_id)

    async def ensure_session_restored(self, username: Optional[str] = None) -> bool:
        return await self.coordinator.ensure_session_restored(username)

    # ---- guards ----
    def guard_authenticated(self) -> GuardDecision:
        return require_authenticated(self.authority)

    def guard_game(self, game_id: str) -> GuardDecision:
        return require_game_access(self.authority, game_id)

    async def guard_admin(self) -> GuardDecision:
        return await require_admin(self.directory, self.coordinator)


def _make_store(cfg: AuthorityConfig, fs: ConfigFsPaths, logger: Any) -> RecordStore:
    if cfg.store.engine == "memory":
        return MemoryRecordStore()
    path = fs.resolve(cfg.store.sqlite_path)
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    return SqliteRecordStore(db_path=path, logger=logger)
