from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def iso_now() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp; None when absent or malformed."""
    if not value:
        return None
    s = str(value).strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


class AdminRole(str, Enum):
    admin = "admin"
    super_admin = "super_admin"


class RecordKind(str, Enum):
    ADMIN_ACCOUNTS = "admin_accounts"
    GENERATED_LICENSES = "generated_licenses"


class License(BaseModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: Optional[int] = None
    key: str
    created_at: str = Field(default_factory=iso_now)
    updated_at: str = Field(default_factory=iso_now)
    expiration_days: Optional[int] = Field(default=None, ge=1)
    created_by: str = "system"
    is_active: bool = True
    used_at: Optional[str] = None
    used_by: Optional[str] = None
    allowed_games: List[str] = Field(default_factory=list)
    is_admin: bool = False

    @field_validator("key")
    @classmethod
    def _key_non_empty(cls, v: str) -> str:
        v = str(v or "").strip()
        if not v:
            raise ValueError("key required")
        return v

    @field_validator("allowed_games", mode="before")
    @classmethod
    def _games(cls, v):  # noqa: ANN001
        if v is None:
            return []
        if isinstance(v, str):
            # legacy comma-joined form
            return [g for g in (x.strip() for x in v.split(",")) if g]
        out: List[str] = []
        for g in v:
            g = str(g).strip()
            if g and g not in out:
                out.append(g)
        return out

    @property
    def is_unrestricted(self) -> bool:
        return not self.allowed_games

    def session_anchor(self) -> Optional[datetime]:
        """First parseable of used_at / updated_at / created_at."""
        for v in (self.used_at, self.updated_at, self.created_at):
            dt = parse_iso(v)
            if dt is not None:
                return dt
        return None

    def expires_at(self) -> Optional[datetime]:
        if self.expiration_days is None:
            return None
        start = parse_iso(self.created_at)
        if start is None:
            return None
        return start + timedelta(days=int(self.expiration_days))

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        exp = self.expires_at()
        if exp is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now >= exp


class AdminAccount(BaseModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: Optional[int] = None
    username: str
    password_hash: str = Field(default="", repr=False)
    role: AdminRole = AdminRole.admin
    created_at: str = Field(default_factory=iso_now)
    updated_at: str = Field(default_factory=iso_now)

    @field_validator("username")
    @classmethod
    def _username(cls, v: str) -> str:
        v = str(v or "").strip()
        if not v:
            raise ValueError("username required")
        return v

    def info(self) -> "AdminAccountInfo":
        return AdminAccountInfo(username=self.username, role=self.role, created_at=self.created_at, updated_at=self.updated_at)


class AdminAccountInfo(BaseModel):
    """Account view without credential material."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    username: str
    role: AdminRole
    created_at: str
    updated_at: str


def unique_key_of(record: "License | AdminAccount") -> str:
    if isinstance(record, License):
        return record.key
    return record.username


def kind_of(record: "License | AdminAccount") -> RecordKind:
    if isinstance(record, License):
        return RecordKind.GENERATED_LICENSES
    if isinstance(record, AdminAccount):
        return RecordKind.ADMIN_ACCOUNTS
    raise TypeError(f"unsupported record type: {type(record).__name__}")
