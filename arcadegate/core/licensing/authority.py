"""
LicenseAuthority: owner of the current license (the session).

Authentication and game access are derived from that single license. Admin
logins arrive here too, as permanent admin licenses adopted through
`set_current_license` by the SessionCoordinator.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Protocol

from arcadegate.core.events.models import AuthorityEvent
from arcadegate.core.licensing.access import evaluate_game_access
from arcadegate.core.licensing.models import License, iso_now
from arcadegate.core.licensing.session import Session, SessionSnapshot
from arcadegate.core.logger import mask_key
from arcadegate.core.store.base import RecordStore


class SessionSink(Protocol):
    """Narrow view of the authority handed to the admin side."""

    def set_current_license(self, record: License) -> None: ...

    def get_current_license(self) -> Optional[License]: ...

    def logout(self) -> None: ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LicenseAuthority:
    def __init__(
        self,
        *,
        store: RecordStore,
        session: Optional[Session] = None,
        event_bus: Any = None,
        logger: Any = None,
        error_reporter: Any = None,
        enforce_expiration: bool = False,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.store = store
        self.session = session or Session(logger=logger)
        self.event_bus = event_bus
        self.logger = logger
        self.error_reporter = error_reporter
        self.enforce_expiration = bool(enforce_expiration)
        self.clock = clock

    async def login(self, key: str, *, used_by: str = "unknown") -> bool:
        """
        Adopt the license `key` as the session.

        False when the key is unknown, revoked, expired (if enforced) or the
        store fails; the session is left untouched in every failure case.
        """
        key = str(key or "").strip()
        if not key:
            return False
        trace_id = uuid.uuid4().hex
        try:
            lic = await self.store.get_license(key)
            if lic is None or not lic.is_active:
                self._log_info(f"License login rejected ({mask_key(key)}).")
                return False
            if self._expired(lic):
                self._log_info(f"License login rejected: expired ({mask_key(key)}).")
                return False
            if not lic.used_at:
                lic.used_at = iso_now()
                lic.used_by = str(used_by or "unknown")
                await self.store.update(lic)
        except Exception as e:  # noqa: BLE001
            self._report(e, trace_id=trace_id, action="login")
            return False

        self._adopt(lic, trace_id=trace_id, reason="login")
        self._log_info(f"License login ok ({mask_key(key)}).")
        return True

    def logout(self) -> None:
        if self.session.snapshot().license is None:
            return
        self.session._clear()
        self._publish_session_changed(trace_id=uuid.uuid4().hex, reason="logout")

    def is_authenticated(self) -> bool:
        lic = self.session.snapshot().license
        if lic is None or not lic.is_active:
            return False
        return not self._expired(lic)

    def has_game_access(self, game_id: str) -> bool:
        lic = self.session.snapshot().license
        if lic is not None and self._expired(lic):
            return False
        return evaluate_game_access(lic, game_id)

    def set_current_license(self, record: License) -> None:
        """Adopt an already-resolved record without going back to the store."""
        self._adopt(record, trace_id=uuid.uuid4().hex, reason="adopt")

    def get_current_license(self) -> Optional[License]:
        return self.session.snapshot().license

    def snapshot(self) -> SessionSnapshot:
        return self.session.snapshot()

    # ---- internals ----
    def _expired(self, lic: License) -> bool:
        if not self.enforce_expiration or lic.is_admin:
            return False
        return lic.is_expired(self.clock())

    def _adopt(self, lic: License, *, trace_id: str, reason: str) -> None:
        self.session._adopt(lic)
        self._publish_session_changed(trace_id=trace_id, reason=reason)

    def _publish_session_changed(self, *, trace_id: str, reason: str) -> None:
        if self.event_bus is None:
            return
        snap = self.session.snapshot()
        self.event_bus.publish(
            AuthorityEvent.of(
                "session.changed",
                trace_id=trace_id,
                reason=reason,
                is_authenticated=self.is_authenticated(),
                is_admin=snap.is_admin,
            )
        )

    def _report(self, exc: BaseException, *, trace_id: str, action: str) -> None:
        if self.logger:
            self.logger.error(f"License {action} failed: {exc}")
        if self.error_reporter is not None:
            self.error_reporter.report_exception(exc, trace_id=trace_id, subsystem="licensing", context={"action": action})

    def _log_info(self, msg: str) -> None:
        if self.logger:
            self.logger.info(msg)
