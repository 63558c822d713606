"""Exception classes for db-reconciler.

Only misconfiguration and unrecoverable introspection failures propagate
as exceptions. Per-item outcomes (a failed ALTER, an unresolved field
type) are reported to the message sink instead.
"""

from typing import Any


class ReconcilerError(Exception):
    """Base exception for all db-reconciler errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        result = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            result += f" [{details_str}]"
        if self.cause:
            result += f" (caused by: {self.cause})"
        return result


class ConfigurationError(ReconcilerError):
    """Raised for deployment misconfiguration (bad FK style, clashing hooks, bad files)."""

    pass


class ModelError(ReconcilerError):
    """Raised when the declared model cannot be turned into DDL (unknown field type, missing field)."""

    pass


class IntrospectionError(ReconcilerError):
    """Raised when live metadata cannot be read."""

    pass


class ProfileNotFoundError(ReconcilerError):
    """Raised when no database profile is configured."""

    pass
