"""
Scrubbing for event payloads and error context.

Credential fields are dropped outright. License keys are masked to their
first segment, whether they sit under a key field or appear as a bare value,
so logs still show which license family was involved.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from arcadegate.core.logger import mask_key

REDACTED = "***REDACTED***"

CREDENTIAL_FIELDS = frozenset({"password", "password_hash", "admin_password", "secret", "token", "authorization"})
LICENSE_KEY_FIELDS = frozenset({"key", "license_key", "demo_license_key"})

# generated keys, the demo key and admin session keys: three or more upper-case segments
_KEY_SHAPED = re.compile(r"^[A-Z0-9]+(?:-[A-Z0-9]+){2,}$")


def looks_like_license_key(value: str) -> bool:
    return bool(_KEY_SHAPED.match(value))


def redact(obj: Any, field: Optional[str] = None) -> Any:
    name = str(field).lower() if field is not None else None
    if name in CREDENTIAL_FIELDS:
        return REDACTED
    if isinstance(obj, dict):
        return {k: redact(v, k) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [redact(x) for x in obj]
    if isinstance(obj, str) and (name in LICENSE_KEY_FIELDS or looks_like_license_key(obj)):
        return mask_key(obj)
    return obj
