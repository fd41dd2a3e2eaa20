from __future__ import annotations

import json
import time
import uuid
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator

from arcadegate.core.events.redaction import redact


class EventSeverity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"


class EventFamily(str, Enum):
    session = "session"
    license = "license"
    admin = "admin"


def _utc_stamp() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


class AuthorityEvent(BaseModel):
    """
    Something that changed in the session, the license list or the accounts.

    `event_type` is `<family>.<what>`, e.g. `license.revoked`. The payload is
    scrubbed on construction, so subscribers and sinks never see a password
    or a full license key.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    event_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    event_type: str
    trace_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    occurred_at: str = Field(default_factory=_utc_stamp)
    severity: EventSeverity = EventSeverity.INFO
    payload: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def of(cls, event_type: str, *, trace_id: str | None = None, severity: EventSeverity = EventSeverity.INFO, **payload: Any) -> "AuthorityEvent":
        fields: Dict[str, Any] = {"event_type": event_type, "severity": severity, "payload": payload}
        if trace_id:
            fields["trace_id"] = trace_id
        return cls(**fields)

    @property
    def family(self) -> EventFamily:
        return EventFamily(self.event_type.split(".", 1)[0])

    @field_validator("event_type")
    @classmethod
    def _known_family(cls, v: str) -> str:
        v = str(v or "").strip()
        family, dot, what = v.partition(".")
        if not dot or not what:
            raise ValueError("event_type must look like '<family>.<what>'")
        if family not in EventFamily.__members__:
            raise ValueError(f"unknown event family: {family}")
        return v

    @field_validator("payload")
    @classmethod
    def _scrubbed(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        safe = redact(v)
        try:
            json.dumps(safe, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise ValueError("payload must be JSON-serializable") from e
        return safe
