"""batchstate - typed execution context for checkpoint/restart of batch jobs."""

__version__ = "0.1.0"
__package_name__ = "batchstate"

from .config import BatchStateSettings, load_settings
from .core.context import ExecutionContext
from .core.serialization import (
    ContextSerializer,
    JsonContextSerializer,
    PickleContextSerializer,
    ValueTypeRegistry,
    clone,
    get_serializer,
)
from .core.state import (
    CheckpointManager,
    DuckDBStateBackend,
    InMemoryStateBackend,
    StateBackend,
)
from .exceptions import (
    BatchStateError,
    CheckpointError,
    ConfigurationError,
    SerializationError,
    TypeMismatchError,
)

__all__ = [
    "BatchStateError",
    "BatchStateSettings",
    "CheckpointError",
    "CheckpointManager",
    "ConfigurationError",
    "ContextSerializer",
    "DuckDBStateBackend",
    "ExecutionContext",
    "InMemoryStateBackend",
    "JsonContextSerializer",
    "PickleContextSerializer",
    "SerializationError",
    "StateBackend",
    "TypeMismatchError",
    "ValueTypeRegistry",
    "clone",
    "get_serializer",
    "load_settings",
]
