"""Exception hierarchy for batchstate.

Every error raised by the package derives from BatchStateError, which carries
structured context for logging and display. Typed reads raise
TypeMismatchError, which is also a TypeError so generic handlers still work.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Type, Union


class BatchStateError(Exception):
    """Base exception for all batchstate errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        suggested_actions: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__.upper()
        self.context = context or {}
        self.suggested_actions = suggested_actions or []
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "suggested_actions": self.suggested_actions,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        """String representation including context."""
        base_message = self.message

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_message += f" (Context: {context_str})"

        if self.suggested_actions:
            actions_str = "; ".join(self.suggested_actions)
            base_message += f" (Suggested actions: {actions_str})"

        return base_message


def _type_name(expected_type: Union[type, Tuple[type, ...]]) -> str:
    if isinstance(expected_type, tuple):
        return " | ".join(_type_name(t) for t in expected_type)
    return getattr(expected_type, "__name__", repr(expected_type))


class TypeMismatchError(BatchStateError, TypeError):
    """Raised when a stored value does not match the requested type."""

    def __init__(
        self,
        key: str,
        expected_type: Union[Type[Any], Tuple[Type[Any], ...]],
        actual_type: Type[Any],
    ):
        self.key = key
        self.expected_type = expected_type
        self.actual_type = actual_type

        message = (
            f"Value for key '{key}' is of type {_type_name(actual_type)}, "
            f"not {_type_name(expected_type)}"
        )
        super().__init__(
            message,
            context={
                "key": key,
                "expected_type": _type_name(expected_type),
                "actual_type": _type_name(actual_type),
            },
        )


class SerializationError(BatchStateError):
    """Raised when a context cannot be converted to or from bytes."""


class CheckpointError(BatchStateError):
    """Raised when a checkpoint cannot be saved, restored or deleted."""

    def __init__(
        self,
        message: str,
        unit_of_work: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        context: Dict[str, Any] = {}
        if unit_of_work:
            context["unit_of_work"] = unit_of_work
        if original_error:
            context["original_error"] = str(original_error)
            context["original_error_type"] = type(original_error).__name__

        super().__init__(
            message,
            context=context,
            suggested_actions=["Check the state backend and the serializer"],
        )
        self.unit_of_work = unit_of_work
        self.original_error = original_error


class ConfigurationError(BatchStateError, ValueError):
    """Raised when settings are invalid."""


__all__ = [
    "BatchStateError",
    "TypeMismatchError",
    "SerializationError",
    "CheckpointError",
    "ConfigurationError",
]
