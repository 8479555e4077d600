"""batchstate checkpoint persistence module.

This module persists execution contexts at checkpoint boundaries. Backends
store opaque payloads; the CheckpointManager decides when to write and keeps
the context's dirty flag in step with what has been persisted.
"""

from batchstate.core.state.backends import (
    DuckDBStateBackend,
    InMemoryStateBackend,
    StateBackend,
)
from batchstate.core.state.checkpoint_manager import CheckpointManager

__all__ = [
    "StateBackend",
    "InMemoryStateBackend",
    "DuckDBStateBackend",
    "CheckpointManager",
]
