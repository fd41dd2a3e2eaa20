"""
AdminDirectory: admin accounts and license issuance.

Boolean-returning operations (login, account create/delete) fold every failure
into False and log it; license issuance and revocation raise.
"""

from __future__ import annotations

import uuid
from typing import Any, Iterable, List, Optional, Union

from arcadegate.core.admin.coordinator import SessionCoordinator
from arcadegate.core.config.models import LicensingConfig
from arcadegate.core.errors import ConflictError, InvalidCredentialsError, NotFoundError, UnauthorizedError, ValidationError
from arcadegate.core.events.models import AuthorityEvent
from arcadegate.core.licensing.authority import SessionSink
from arcadegate.core.licensing.keys import admin_license_key, generate_license_key, username_key
from arcadegate.core.licensing.models import AdminAccount, AdminAccountInfo, AdminRole, License, RecordKind
from arcadegate.core.logger import mask_key
from arcadegate.core.security import PasswordHasher
from arcadegate.core.store.base import RecordStore

USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 64
PASSWORD_MIN_LEN = 5


class AdminDirectory:
    def __init__(
        self,
        *,
        store: RecordStore,
        sink: SessionSink,
        coordinator: SessionCoordinator,
        hasher: Optional[PasswordHasher] = None,
        licensing: Optional[LicensingConfig] = None,
        event_bus: Any = None,
        logger: Any = None,
        error_reporter: Any = None,
    ):
        self.store = store
        self.sink = sink
        self.coordinator = coordinator
        self.hasher = hasher or PasswordHasher()
        self.licensing = licensing or LicensingConfig()
        self.event_bus = event_bus
        self.logger = logger
        self.error_reporter = error_reporter
        self._accounts: List[AdminAccountInfo] = []
        self._licenses: List[License] = []

    # ---- cache ----
    async def reload(self) -> None:
        await self.reload_accounts()
        await self.reload_licenses()

    async def reload_accounts(self) -> None:
        accounts = await self.store.list_admin_accounts()
        self._accounts = [a.info() for a in accounts]
        self._publish("admin.accounts_reloaded", {"count": len(self._accounts)})

    async def reload_licenses(self) -> None:
        licenses = await self.store.list_licenses()
        self._licenses = [lic for lic in licenses if not lic.is_admin]
        self._publish("license.list_reloaded", {"count": len(self._licenses)})

    def get_admin_accounts(self) -> List[AdminAccountInfo]:
        """Last loaded accounts; may lag a mutation until its reload completes."""
        return list(self._accounts)

    def get_generated_licenses(self) -> List[License]:
        """Last loaded end-user licenses (admin session licenses excluded)."""
        return [lic.model_copy(deep=True) for lic in self._licenses]

    def validate_license_key(self, key: str) -> Optional[License]:
        for lic in self._licenses:
            if lic.key == key and lic.is_active:
                return lic.model_copy(deep=True)
        return None

    # ---- admin session ----
    async def login_admin(self, username: str, password: str) -> bool:
        username = str(username or "").strip()
        trace_id = uuid.uuid4().hex
        try:
            account = await self.store.get_admin_account(username)
            if account is None or not self.hasher.verify(password, account.password_hash):
                raise InvalidCredentialsError(username=username)
            await self.coordinator.adopt_admin_license(account.username)
            await self.reload_licenses()
        except InvalidCredentialsError:
            if self.logger:
                self.logger.info(f"Admin login rejected for '{username}'.")
            return False
        except Exception as e:  # noqa: BLE001
            self._report(e, trace_id=trace_id, action="login_admin")
            return False
        if self.logger:
            self.logger.info(f"Admin login ok for '{username}'.")
        return self.is_admin_logged_in()

    async def logout_admin(self) -> None:
        username = self.current_admin_username()
        self.sink.logout()
        if username is None:
            return
        try:
            await self.coordinator.revoke_admin_license(username)
        except Exception as e:  # noqa: BLE001
            self._report(e, trace_id=uuid.uuid4().hex, action="logout_admin")
            return
        if self.logger:
            self.logger.info(f"Admin '{username}' logged out.")

    def is_admin_logged_in(self) -> bool:
        return self.coordinator.current_admin_license() is not None

    def current_admin_username(self) -> Optional[str]:
        return self.coordinator.current_admin_username()

    # ---- accounts ----
    async def create_admin_account(self, username: str, password: str, role: AdminRole | str = AdminRole.admin) -> bool:
        trace_id = uuid.uuid4().hex
        try:
            await self._require_super_admin()
            username = _clean_username(username)
            if len(str(password or "")) < PASSWORD_MIN_LEN:
                raise ValidationError("Password too short.")
            if await self.store.get_admin_account(username) is not None:
                raise ConflictError("Username already exists.", username=username)
            # one admin session license per account: names whose uppercase forms meet would share it
            session_key = admin_license_key(username)
            if any(admin_license_key(a.username) == session_key for a in await self.store.list_admin_accounts()):
                raise ConflictError("Username clashes with an existing account.", username=username)
            account = AdminAccount(username=username, password_hash=self.hasher.hash(password), role=AdminRole(role))
            await self.store.create(account)
            await self.reload_accounts()
        except (UnauthorizedError, ConflictError, ValidationError, ValueError) as e:
            if self.logger:
                self.logger.warning(f"Create admin account refused: {e}")
            return False
        except Exception as e:  # noqa: BLE001
            self._report(e, trace_id=trace_id, action="create_admin_account")
            return False
        if self.logger:
            self.logger.info(f"Admin account '{username}' created.")
        return True

    async def delete_admin_account(self, username: str) -> bool:
        trace_id = uuid.uuid4().hex
        target = str(username or "").strip()
        try:
            acting = await self._require_super_admin()
            if username_key(target) == username_key(acting.username):
                raise UnauthorizedError("Admins cannot delete their own account.")
            await self._delete_account(target)
            await self.reload_accounts()
        except (UnauthorizedError, NotFoundError) as e:
            if self.logger:
                self.logger.warning(f"Delete admin account refused: {e}")
            return False
        except Exception as e:  # noqa: BLE001
            self._report(e, trace_id=trace_id, action="delete_admin_account")
            return False
        if self.logger:
            self.logger.info(f"Admin account '{target}' deleted.")
        return True

    # ---- licenses ----
    async def generate_license(self, expiration_days: int, allowed_games: Union[str, Iterable[str], None] = None) -> License:
        acting = self.current_admin_username()
        if acting is None:
            raise UnauthorizedError("No admin logged in.")
        days = _check_days(expiration_days, self.licensing)
        if allowed_games is not None and not isinstance(allowed_games, str):
            allowed_games = list(allowed_games)

        lic: Optional[License] = None
        for _ in range(int(self.licensing.key_generation_attempts)):
            key = generate_license_key(segments=self.licensing.key_segments, segment_length=self.licensing.key_segment_length)
            if await self.store.get_license(key) is not None:
                continue
            try:
                lic = await self.store.create(License(key=key, expiration_days=days, created_by=acting, is_active=True, allowed_games=allowed_games))
                break
            except ConflictError:
                continue
        if lic is None:
            raise ConflictError("Could not allocate a unique license key.", attempts=self.licensing.key_generation_attempts)

        await self.reload_licenses()
        self._publish("license.generated", {"key_hint": mask_key(lic.key), "expiration_days": days, "games": len(lic.allowed_games), "created_by": acting})
        if self.logger:
            self.logger.info(f"License {mask_key(lic.key)} generated by '{acting}' ({days} days, {len(lic.allowed_games) or 'all'} games).")
        return lic

    async def revoke_license(self, key: str) -> None:
        acting = self.current_admin_username()
        if acting is None:
            raise UnauthorizedError("No admin logged in.")
        lic = await self.store.revoke_license(key)
        current = self.sink.get_current_license()
        if current is not None and current.key == lic.key:
            self.sink.set_current_license(lic)
        await self.reload_licenses()
        self._publish("license.revoked", {"key_hint": mask_key(lic.key), "revoked_by": acting})
        if self.logger:
            self.logger.info(f"License {mask_key(lic.key)} revoked by '{acting}'.")

    async def mark_license_as_used(self, key: str, username: Optional[str] = None) -> None:
        try:
            await self.store.mark_license_as_used(key, username or "unknown")
            await self.reload_licenses()
        except Exception as e:  # noqa: BLE001
            self._report(e, trace_id=uuid.uuid4().hex, action="mark_license_as_used")

    # ---- internals ----
    async def _require_super_admin(self) -> AdminAccount:
        acting = self.current_admin_username()
        if acting is None:
            raise UnauthorizedError("No admin logged in.")
        account = await self.store.get_admin_account(acting)
        if account is None or account.role != AdminRole.super_admin:
            raise UnauthorizedError("Super admin required.", username=acting)
        return account

    async def _delete_account(self, username: str) -> None:
        account = await self.store.get_admin_account(username)
        if account is None:
            raise NotFoundError("Admin account not found.", username=username)
        await self.store.delete(RecordKind.ADMIN_ACCOUNTS, account.username)
        # a deleted account must not come back through session restoration
        lic = await self.store.get_license(admin_license_key(account.username))
        if lic is not None and lic.is_active:
            await self.coordinator.revoke_admin_license(account.username)

    def _publish(self, event_type: str, payload: dict) -> None:
        if self.event_bus is None:
            return
        self.event_bus.publish(AuthorityEvent.of(event_type, **payload))

    def _report(self, exc: BaseException, *, trace_id: str, action: str) -> None:
        if self.logger:
            self.logger.error(f"Admin {action} failed: {exc}")
        if self.error_reporter is not None:
            self.error_reporter.report_exception(exc, trace_id=trace_id, subsystem="admin", context={"action": action})


def _clean_username(username: str) -> str:
    u = str(username or "").strip()
    if not (USERNAME_MIN_LEN <= len(u) <= USERNAME_MAX_LEN):
        raise ValidationError("Username must be 3-64 characters.")
    if any(ch.isspace() for ch in u):
        raise ValidationError("Username must not contain whitespace.")
    return u


def _check_days(expiration_days: int, cfg: LicensingConfig) -> int:
    try:
        days = int(expiration_days)
    except (TypeError, ValueError) as e:
        raise ValidationError("Expiration days must be a number.") from e
    if not (cfg.min_expiration_days <= days <= cfg.max_expiration_days):
        raise ValidationError(f"Expiration days must be between {cfg.min_expiration_days} and {cfg.max_expiration_days}.", expiration_days=days)
    return days
