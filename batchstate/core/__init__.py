"""Core execution context and serialization."""

from batchstate.core.context import ExecutionContext
from batchstate.core.serialization import (
    ContextSerializer,
    JsonContextSerializer,
    PickleContextSerializer,
    ValueTypeRegistry,
    clone,
    get_serializer,
)

__all__ = [
    "ExecutionContext",
    "ContextSerializer",
    "PickleContextSerializer",
    "JsonContextSerializer",
    "ValueTypeRegistry",
    "clone",
    "get_serializer",
]
