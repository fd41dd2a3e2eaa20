from __future__ import annotations

import re
import secrets
import string
from typing import Callable, Optional

KEY_ALPHABET = string.ascii_uppercase + string.digits

ADMIN_KEY_PREFIX = "ADMIN-"
ADMIN_KEY_SUFFIX = "-PERMANENT"
_ADMIN_KEY_RE = re.compile(r"^ADMIN-(.+)-PERMANENT$")


def generate_license_key(*, segments: int = 4, segment_length: int = 5, choice: Callable[[str], str] = secrets.choice) -> str:
    return "-".join("".join(choice(KEY_ALPHABET) for _ in range(segment_length)) for _ in range(segments))


def license_key_pattern(*, segments: int = 4, segment_length: int = 5) -> re.Pattern:
    seg = f"[A-Z0-9]{{{segment_length}}}"
    return re.compile(rf"^{seg}(?:-{seg}){{{segments - 1}}}$")


def is_generated_key(key: str, *, segments: int = 4, segment_length: int = 5) -> bool:
    return bool(license_key_pattern(segments=segments, segment_length=segment_length).match(str(key or "")))


def username_key(username: str) -> str:
    """Folded form of an account name; two names with the same key are one account."""
    return str(username or "").strip().casefold()


def admin_license_key(username: str) -> str:
    return f"{ADMIN_KEY_PREFIX}{str(username).strip().upper()}{ADMIN_KEY_SUFFIX}"


def parse_admin_username(key: str) -> Optional[str]:
    """
    Username carried by an admin session key, lowercased.

    The key holds the uppercased username, so the original casing is not
    recoverable. Prefer the license's `used_by` where it is set.
    """
    m = _ADMIN_KEY_RE.match(str(key or ""))
    return m.group(1).lower() if m else None
