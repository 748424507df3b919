"""
Error Types
Construction-time failures for the proposal pipeline.

Validation-time findings are never raised; they come back as data in a
ValidationResult. Everything in this module is fatal to the current
invocation and carries enough context for a structured log line.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional


class ZeroKeyError(Exception):
    """Base class for all pipeline errors."""

    code = "ZEROKEY_ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        retryable: bool = False,
        context: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.retryable = retryable
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": type(self).__name__,
            "message": self.message,
            "code": self.code,
            "retryable": self.retryable,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }


class ValidationError(ZeroKeyError, ValueError):
    """An input failed a fail-fast invariant (address, chain id, encoding)."""

    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        context: Optional[dict[str, Any]] = None,
    ):
        merged = dict(context or {})
        merged["field"] = field
        merged["value"] = value if _is_json_scalar(value) else repr(value)
        super().__init__(message, context=merged)
        self.field = field
        self.value = value


class ConfigurationError(ZeroKeyError):
    """Missing or unreadable configuration: proposal file, env, deploy.yaml."""

    code = "CONFIGURATION_ERROR"

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        expected_format: str | None = None,
        context: Optional[dict[str, Any]] = None,
    ):
        merged = dict(context or {})
        merged["config_key"] = config_key
        merged["expected_format"] = expected_format
        super().__init__(message, context=merged)
        self.config_key = config_key
        self.expected_format = expected_format


class PolicyValidationError(ZeroKeyError):
    """A proposal failed policy validation (raised only by the CLI report)."""

    code = "POLICY_VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        *,
        violations: Optional[list[str]] = None,
        proposal_data: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message,
            context={
                "violations": list(violations or []),
                "proposal_data": proposal_data or {},
            },
        )
        self.violations = list(violations or [])
        self.proposal_data = proposal_data or {}


def _is_json_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))
