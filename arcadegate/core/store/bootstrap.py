from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from arcadegate.core.config.models import BootstrapConfig
from arcadegate.core.errors import ConflictError
from arcadegate.core.licensing.models import AdminAccount, AdminRole, License
from arcadegate.core.security import PasswordHasher
from arcadegate.core.store.base import RecordStore


@dataclass(frozen=True)
class BootstrapResult:
    admin_created: bool
    demo_license_created: bool


async def bootstrap_store(store: RecordStore, *, cfg: Optional[BootstrapConfig] = None, hasher: Optional[PasswordHasher] = None, logger: Any = None) -> BootstrapResult:
    """
    First-run seeding. Idempotent:
    - no admin accounts at all -> create the default account
    - demo license missing -> create it (unrestricted, nominal expiry)
    """
    cfg = cfg or BootstrapConfig()
    hasher = hasher or PasswordHasher()
    admin_created = False
    demo_created = False

    if not await store.list_admin_accounts():
        account = AdminAccount(username=cfg.admin_username, password_hash=hasher.hash(cfg.admin_password), role=AdminRole(cfg.admin_role))
        try:
            await store.create(account)
            admin_created = True
        except ConflictError:
            # another process seeded first
            pass
        if admin_created and logger:
            logger.info(f"Seeded default admin account '{cfg.admin_username}'.")

    if await store.get_license(cfg.demo_license_key) is None:
        demo = License(
            key=cfg.demo_license_key,
            expiration_days=int(cfg.demo_expiration_days),
            created_by="system",
            is_active=True,
            allowed_games=[],
        )
        try:
            await store.create(demo)
            demo_created = True
        except ConflictError:
            pass
        if demo_created and logger:
            logger.info("Seeded demo license.")

    return BootstrapResult(admin_created=admin_created, demo_license_created=demo_created)
