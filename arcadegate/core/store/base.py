from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional, Union

from arcadegate.core.errors import NotFoundError
from arcadegate.core.licensing.models import AdminAccount, License, RecordKind, iso_now

Record = Union[AdminAccount, License]


class RecordStore(ABC):
    """
    Asynchronous key-indexed store for admin accounts and licenses.

    Contract:
    - each operation is atomic on its own; nothing spans operations
    - records handed out are copies (mutating them never touches the store)
    - admin usernames are unique case-insensitively; license keys exactly
    - create() on a duplicate unique key raises ConflictError
    - update()/delete() on a missing key raises NotFoundError
    """

    @abstractmethod
    async def get_all(self, kind: RecordKind) -> List[Record]: ...

    @abstractmethod
    async def get_by_unique_key(self, kind: RecordKind, key: str) -> Optional[Record]: ...

    @abstractmethod
    async def create(self, record: Record) -> Record:
        """Persist a new record; returns a copy with id and both timestamps assigned."""

    @abstractmethod
    async def update(self, record: Record) -> None:
        """Replace the stored record with the same unique key; refreshes record.updated_at in place."""

    @abstractmethod
    async def delete(self, kind: RecordKind, key: str) -> None: ...

    async def close(self) -> None:
        return None

    # ---- typed helpers ----
    async def get_license(self, key: str) -> Optional[License]:
        rec = await self.get_by_unique_key(RecordKind.GENERATED_LICENSES, key)
        return rec if isinstance(rec, License) else None

    async def get_admin_account(self, username: str) -> Optional[AdminAccount]:
        rec = await self.get_by_unique_key(RecordKind.ADMIN_ACCOUNTS, username)
        return rec if isinstance(rec, AdminAccount) else None

    async def list_licenses(self) -> List[License]:
        return [r for r in await self.get_all(RecordKind.GENERATED_LICENSES) if isinstance(r, License)]

    async def list_admin_accounts(self) -> List[AdminAccount]:
        return [r for r in await self.get_all(RecordKind.ADMIN_ACCOUNTS) if isinstance(r, AdminAccount)]

    async def revoke_license(self, key: str) -> License:
        lic = await self.get_license(key)
        if lic is None:
            raise NotFoundError("License not found.", kind=RecordKind.GENERATED_LICENSES.value)
        lic.is_active = False
        await self.update(lic)
        return lic

    async def mark_license_as_used(self, key: str, username: str) -> License:
        lic = await self.get_license(key)
        if lic is None:
            raise NotFoundError("License not found.", kind=RecordKind.GENERATED_LICENSES.value)
        lic.used_at = iso_now()
        lic.used_by = username
        await self.update(lic)
        return lic
