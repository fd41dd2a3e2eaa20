from __future__ import annotations

import json
import os
import threading
from dataclasses import dataclass, field

from arcadegate.core.events.models import AuthorityEvent


@dataclass
class EventLogger:
    """
    JSONL sink for bus events (payloads are already scrubbed by AuthorityEvent).
    """

    path: str
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def __call__(self, ev: AuthorityEvent) -> None:
        self.log(ev)

    def log(self, ev: AuthorityEvent) -> None:
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        line = json.dumps(
            {
                "ts": ev.occurred_at,
                "trace_id": ev.trace_id,
                "event": ev.event_type,
                "family": ev.family.value,
                "severity": ev.severity.value,
                "details": ev.payload,
            },
            ensure_ascii=False,
        )
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
