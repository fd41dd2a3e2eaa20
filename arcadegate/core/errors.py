from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from arcadegate.core.events.redaction import redact


class Severity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class ArcadeGateError(Exception):
    code: str
    user_message: str
    severity: Severity = Severity.ERROR
    recoverable: bool = True
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.code)

    def __str__(self) -> str:
        return f"{self.code}: {self.user_message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "recoverable": bool(self.recoverable),
            "context": redact(self.context or {}),
        }


# ---- Store ----
class NotFoundError(ArcadeGateError):
    def __init__(self, user_message: str = "Record not found.", **ctx: Any):
        super().__init__("not_found", user_message, severity=Severity.WARN, recoverable=True, context=ctx)


class ConflictError(ArcadeGateError):
    def __init__(self, user_message: str = "Record already exists.", **ctx: Any):
        super().__init__("conflict", user_message, severity=Severity.WARN, recoverable=True, context=ctx)


class StoreError(ArcadeGateError):
    def __init__(self, user_message: str = "Record store error.", **ctx: Any):
        super().__init__("store_error", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)


# ---- Authority ----
class UnauthorizedError(ArcadeGateError):
    def __init__(self, user_message: str = "Admin session required for this action.", **ctx: Any):
        super().__init__("unauthorized", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


class InvalidCredentialsError(ArcadeGateError):
    def __init__(self, user_message: str = "Invalid credentials.", **ctx: Any):
        super().__init__("invalid_credentials", user_message, severity=Severity.WARN, recoverable=True, context=ctx)


class ValidationError(ArcadeGateError):
    def __init__(self, user_message: str = "Invalid request.", **ctx: Any):
        super().__init__("validation_error", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


class ConfigError(ArcadeGateError):
    def __init__(self, user_message: str = "Configuration error.", **ctx: Any):
        super().__init__("config_error", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)
