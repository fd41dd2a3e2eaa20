from __future__ import annotations

from typing import Dict, List, Optional

from arcadegate.core.errors import ConflictError, NotFoundError
from arcadegate.core.licensing.keys import username_key
from arcadegate.core.licensing.models import RecordKind, iso_now, kind_of, unique_key_of
from arcadegate.core.store.base import Record, RecordStore


def _norm(kind: RecordKind, key: str) -> str:
    return username_key(key) if kind == RecordKind.ADMIN_ACCOUNTS else str(key or "")


class MemoryRecordStore(RecordStore):
    """
    Process-local store. Used by tests and `store.engine = "memory"`.

    Operations never await internally, so each one runs to completion on the
    event loop without interleaving.
    """

    def __init__(self) -> None:
        self._rows: Dict[RecordKind, Dict[str, Record]] = {k: {} for k in RecordKind}
        self._next_id: Dict[RecordKind, int] = {k: 1 for k in RecordKind}

    async def get_all(self, kind: RecordKind) -> List[Record]:
        rows = sorted(self._rows[kind].values(), key=lambda r: int(r.id or 0))
        return [r.model_copy(deep=True) for r in rows]

    async def get_by_unique_key(self, kind: RecordKind, key: str) -> Optional[Record]:
        rec = self._rows[kind].get(_norm(kind, key))
        return rec.model_copy(deep=True) if rec is not None else None

    async def create(self, record: Record) -> Record:
        kind = kind_of(record)
        nk = _norm(kind, unique_key_of(record))
        if nk in self._rows[kind]:
            raise ConflictError("Record already exists.", kind=kind.value)
        now = iso_now()
        stored = record.model_copy(deep=True, update={"id": self._next_id[kind], "created_at": now, "updated_at": now})
        self._next_id[kind] += 1
        self._rows[kind][nk] = stored
        return stored.model_copy(deep=True)

    async def update(self, record: Record) -> None:
        kind = kind_of(record)
        nk = _norm(kind, unique_key_of(record))
        existing = self._rows[kind].get(nk)
        if existing is None:
            raise NotFoundError("Record not found.", kind=kind.value)
        record.updated_at = iso_now()
        self._rows[kind][nk] = record.model_copy(deep=True, update={"id": existing.id})

    async def delete(self, kind: RecordKind, key: str) -> None:
        if self._rows[kind].pop(_norm(kind, key), None) is None:
            raise NotFoundError("Record not found.", kind=kind.value)
