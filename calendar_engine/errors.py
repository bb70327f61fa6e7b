"""
Engine error types.

ValidationError is raised for malformed inputs before any expansion or
search work begins. Errors raised by collaborators (event sources,
permission oracles) are never wrapped and propagate unchanged.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for errors raised by the calendar engine."""


class ValidationError(EngineError, ValueError):
    """An input failed validation (bad duration, window, recurrence rule...)."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field

    def __str__(self) -> str:
        message = super().__str__()
        if self.field:
            return f"{self.field}: {message}"
        return message


class PermissionDeniedError(EngineError):
    """The requester may not view the target calendar."""

    def __init__(self, target_user_id: str, requester_id: str):
        super().__init__(f"{requester_id} may not view free/busy of {target_user_id}")
        self.target_user_id = target_user_id
        self.requester_id = requester_id


def require(condition: bool, message: str, field: str | None = None) -> None:
    """Raise ValidationError with ``message`` unless ``condition`` holds."""
    if not condition:
        raise ValidationError(message, field=field)


__all__ = ["EngineError", "PermissionDeniedError", "ValidationError", "require"]
