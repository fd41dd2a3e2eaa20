from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class StoreConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    engine: Literal["sqlite", "memory"] = "sqlite"
    sqlite_path: str = "runtime/arcadegate.sqlite"


class BootstrapConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    enabled: bool = True
    admin_username: str = "admin"
    admin_password: str = "admin123"
    admin_role: Literal["admin", "super_admin"] = "super_admin"
    demo_license_key: str = "TEST-LICENSE-12345DEMO"
    demo_expiration_days: int = Field(default=365, ge=1)

    @field_validator("admin_username")
    @classmethod
    def _username(cls, v: str) -> str:
        v = str(v or "").strip()
        if not v:
            raise ValueError("admin_username required")
        return v


class LicensingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    enforce_expiration: bool = False
    key_segments: int = Field(default=4, ge=1, le=8)
    key_segment_length: int = Field(default=5, ge=3, le=16)
    key_generation_attempts: int = Field(default=16, ge=1, le=1000)
    min_expiration_days: int = Field(default=1, ge=1)
    max_expiration_days: int = Field(default=365, ge=1)

    @model_validator(mode="after")
    def _bounds(self) -> "LicensingConfig":
        if self.min_expiration_days > self.max_expiration_days:
            raise ValueError("min_expiration_days must not exceed max_expiration_days")
        return self


class SecurityConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    kdf_n: int = Field(default=2**14, ge=2)
    kdf_r: int = Field(default=8, ge=1)
    kdf_p: int = Field(default=1, ge=1)

    @field_validator("kdf_n")
    @classmethod
    def _power_of_two(cls, v: int) -> int:
        if v & (v - 1):
            raise ValueError("kdf_n must be a power of two")
        return v


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    log_dir: str = "logs"
    errors_path: str = "logs/errors.jsonl"
    events_path: str = "logs/events.jsonl"
    log_events: bool = True


class AuthorityConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    config_version: int = Field(default=1, ge=1)
    store: StoreConfig = Field(default_factory=StoreConfig)
    bootstrap: BootstrapConfig = Field(default_factory=BootstrapConfig)
    licensing: LicensingConfig = Field(default_factory=LicensingConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def default_config_dict() -> dict:
    return AuthorityConfig().model_dump()
