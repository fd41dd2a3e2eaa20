from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional, Tuple

from arcadegate.core.errors import StoreError
from arcadegate.core.licensing.models import RecordKind
from arcadegate.core.store.base import Record, RecordStore


class FakeClock:
    def __init__(self, start: Optional[datetime] = None):
        self._t = start or datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self._t

    def advance(self, days: float = 0.0, seconds: float = 0.0) -> None:
        self._t += timedelta(days=days, seconds=seconds)


class RecordingLogger:
    def __init__(self) -> None:
        self.records: List[Tuple[str, str]] = []

    def info(self, msg, *_a, **_k):  # noqa: ANN001
        self.records.append(("info", str(msg)))

    def warning(self, msg, *_a, **_k):  # noqa: ANN001
        self.records.append(("warning", str(msg)))

    def error(self, msg, *_a, **_k):  # noqa: ANN001
        self.records.append(("error", str(msg)))

    def messages(self, level: str) -> List[str]:
        return [m for lvl, m in self.records if lvl == level]


class FlakyStore(RecordStore):
    """Delegates to `inner` until `fail` is set, then every call raises StoreError."""

    def __init__(self, inner: RecordStore):
        self.inner = inner
        self.fail = False

    def _check(self) -> None:
        if self.fail:
            raise StoreError("store offline")

    async def get_all(self, kind: RecordKind) -> List[Record]:
        self._check()
        return await self.inner.get_all(kind)

    async def get_by_unique_key(self, kind: RecordKind, key: str) -> Optional[Record]:
        self._check()
        return await self.inner.get_by_unique_key(kind, key)

    async def create(self, record: Record) -> Record:
        self._check()
        return await self.inner.create(record)

    async def update(self, record: Record) -> None:
        self._check()
        await self.inner.update(record)

    async def delete(self, kind: RecordKind, key: str) -> None:
        self._check()
        await self.inner.delete(kind, key)


async def open_app(cfg: Any, fs: Any, *, store: Optional[RecordStore] = None, logger: Any = None):
    from arcadegate.core.authority_app import AuthorityApp

    return await AuthorityApp.open(cfg, fs=fs, store=store, logger=logger)
