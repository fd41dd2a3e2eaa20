from __future__ import annotations

import uuid
from typing import Any, Optional

from arcadegate.core.errors import ConflictError
from arcadegate.core.events.models import AuthorityEvent, EventSeverity
from arcadegate.core.licensing.authority import SessionSink
from arcadegate.core.licensing.keys import admin_license_key, parse_admin_username
from arcadegate.core.licensing.models import License, iso_now
from arcadegate.core.store.base import RecordStore


class SessionCoordinator:
    """
    Admin login as license acquisition, and session restoration.

    An admin session is the permanent license ADMIN-{USERNAME}-PERMANENT.
    Exactly one such record exists per username: logins refresh it in place.
    """

    def __init__(self, *, store: RecordStore, sink: SessionSink, event_bus: Any = None, logger: Any = None):
        self.store = store
        self.sink = sink
        self.event_bus = event_bus
        self.logger = logger

    async def adopt_admin_license(self, username: str) -> License:
        """Mint or refresh the admin's permanent license and make it the session."""
        username = str(username).strip()
        key = admin_license_key(username)
        now = iso_now()
        lic = await self.store.get_license(key)
        if lic is None:
            fresh = License(
                key=key,
                expiration_days=None,
                created_by="system",
                is_active=True,
                used_at=now,
                used_by=username,
                allowed_games=[],
                is_admin=True,
            )
            try:
                lic = await self.store.create(fresh)
            except ConflictError:
                # created concurrently (another tab/process); refresh that one
                lic = await self.store.get_license(key)
                if lic is None:
                    raise
                await self._refresh(lic, username=username, now=now)
        else:
            await self._refresh(lic, username=username, now=now)
        self.sink.set_current_license(lic)
        return lic

    async def revoke_admin_license(self, username: str) -> bool:
        """Deactivate the admin's permanent license so restoration cannot pick it up."""
        lic = await self.store.get_license(admin_license_key(username))
        if lic is None or not lic.is_active:
            return False
        lic.is_active = False
        await self.store.update(lic)
        return True

    def current_admin_license(self) -> Optional[License]:
        lic = self.sink.get_current_license()
        if lic is not None and lic.is_admin and lic.is_active:
            return lic
        return None

    def current_admin_username(self) -> Optional[str]:
        lic = self.current_admin_license()
        return admin_username_of(lic) if lic is not None else None

    async def ensure_session_restored(self, username: Optional[str] = None) -> bool:
        """
        Re-derive an admin session from persisted licenses after a cold start.

        No-op success when an admin session is already held. Otherwise the
        first active admin license with a well-formed timestamp is adopted.
        With `username`, only that admin's license qualifies.
        """
        wanted = admin_license_key(username) if username else None
        current = self.current_admin_license()
        if current is not None and wanted in (None, current.key):
            return True
        trace_id = uuid.uuid4().hex
        try:
            licenses = await self.store.list_licenses()
        except Exception as e:  # noqa: BLE001
            if self.logger:
                self.logger.error(f"Admin session restore failed: {e}")
            self._publish("session.restore_failed", trace_id, {"error": str(e)[:200]}, severity=EventSeverity.WARN)
            return False

        for lic in licenses:
            if not (lic.is_admin and lic.is_active):
                continue
            if wanted is not None and lic.key != wanted:
                continue
            if lic.session_anchor() is None:
                continue
            self.sink.set_current_license(lic)
            if self.logger:
                self.logger.info(f"Admin session restored for '{admin_username_of(lic)}'.")
            self._publish("session.restored", trace_id, {"admin": admin_username_of(lic)})
            return self.current_admin_license() is not None
        return False

    # ---- internals ----
    async def _refresh(self, lic: License, *, username: str, now: str) -> None:
        lic.is_active = True
        lic.is_admin = True
        lic.used_at = now
        lic.used_by = username
        await self.store.update(lic)

    def _publish(self, event_type: str, trace_id: str, payload: dict, severity: EventSeverity = EventSeverity.INFO) -> None:
        if self.event_bus is None:
            return
        self.event_bus.publish(AuthorityEvent.of(event_type, trace_id=trace_id, severity=severity, **payload))


def admin_username_of(lic: License) -> Optional[str]:
    """
    Account name behind an admin license.

    `used_by` holds the name exactly as the account stores it. The key only
    carries an uppercased copy, which is lossy for non-ASCII names.
    """
    if lic.used_by and admin_license_key(lic.used_by) == lic.key:
        return lic.used_by
    return parse_admin_username(lic.key)
