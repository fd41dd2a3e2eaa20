from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from arcadegate.core.events.models import AuthorityEvent


@dataclass
class _Sub:
    event_type: str
    handler: Callable[[AuthorityEvent], None]
    priority: int


@dataclass
class BusStats:
    published_total: int = 0
    delivered_total: int = 0
    handler_errors_total: int = 0


class EventBus:
    """
    In-process event bus for session and license changes.

    - delivery is synchronous, in subscriber priority order
    - handler failures are isolated (caught, counted, logged)
    - subscribe() returns an unsubscribe handle
    """

    def __init__(self, *, logger=None):
        self.logger = logger
        self._subs: List[_Sub] = []
        self._stats = BusStats()

    def subscribe(self, event_type: str, handler: Callable[[AuthorityEvent], None], priority: int = 50) -> Callable[[], None]:
        """
        event_type supports:
        - exact match ("session.changed")
        - prefix match ("license.*")
        - wildcard all ("*")
        """
        if not callable(handler):
            raise ValueError("handler must be callable")
        sub = _Sub(event_type=str(event_type), handler=handler, priority=int(priority))
        self._subs.append(sub)
        self._subs.sort(key=lambda s: int(s.priority))

        def _unsubscribe() -> None:
            if sub in self._subs:
                self._subs.remove(sub)

        return _unsubscribe

    def unsubscribe(self, handler: Callable[[AuthorityEvent], None]) -> int:
        before = len(self._subs)
        self._subs = [s for s in self._subs if s.handler is not handler]
        return before - len(self._subs)

    def publish(self, ev: AuthorityEvent) -> int:
        self._stats.published_total += 1
        delivered = 0
        for s in list(self._subs):
            if not _match(s.event_type, ev.event_type):
                continue
            try:
                s.handler(ev)
                delivered += 1
            except Exception as e:  # noqa: BLE001
                self._stats.handler_errors_total += 1
                if self.logger is not None:
                    self.logger.error(f"Event handler {getattr(s.handler, '__name__', 'handler')} failed for {ev.event_type}: {e}")
        self._stats.delivered_total += delivered
        return delivered

    def get_stats(self) -> Dict[str, Any]:
        return {
            "published_total": self._stats.published_total,
            "delivered_total": self._stats.delivered_total,
            "handler_errors_total": self._stats.handler_errors_total,
            "subscribers": len(self._subs),
        }


def _match(subscribed: str, event_type: str) -> bool:
    subscribed = str(subscribed)
    if subscribed == "*":
        return True
    if subscribed.endswith(".*"):
        return str(event_type).startswith(subscribed[:-2])
    return subscribed == event_type
