from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from arcadegate.core.licensing.models import License


@dataclass(frozen=True)
class SessionSnapshot:
    """Immutable view of the current license at one point in time."""

    license: Optional[License] = None

    @property
    def is_authenticated(self) -> bool:
        return self.license is not None and bool(self.license.is_active)

    @property
    def is_admin(self) -> bool:
        return self.is_authenticated and bool(self.license.is_admin)

    @property
    def allowed_games(self) -> Tuple[str, ...]:
        return tuple(self.license.allowed_games) if self.license is not None else ()


SessionListener = Callable[[SessionSnapshot], None]


class Session:
    """
    Holder of the current license.

    Readers take snapshots or subscribe; only LicenseAuthority writes
    (through `_adopt` / `_clear`).
    """

    def __init__(self, *, logger=None) -> None:
        self.logger = logger
        self._current: Optional[License] = None
        self._listeners: List[SessionListener] = []

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(license=self._current.model_copy(deep=True) if self._current is not None else None)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        if not callable(listener):
            raise ValueError("listener must be callable")
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ---- writer side ----
    def _adopt(self, license: License) -> SessionSnapshot:
        self._current = license.model_copy(deep=True)
        return self._notify()

    def _clear(self) -> SessionSnapshot:
        self._current = None
        return self._notify()

    def _notify(self) -> SessionSnapshot:
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception as e:  # noqa: BLE001
                if self.logger is not None:
                    self.logger.error(f"Session listener failed: {e}")
        return snap
