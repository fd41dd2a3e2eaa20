"""
Session/license event models, redaction and the in-process bus.
"""

from arcadegate.core.events.redaction import redact
from arcadegate.core.events.models import AuthorityEvent, EventFamily, EventSeverity
from arcadegate.core.events.bus import EventBus
from arcadegate.core.events.logger import EventLogger

__all__ = [
    "redact",
    "AuthorityEvent",
    "EventFamily",
    "EventSeverity",
    "EventBus",
    "EventLogger",
]
