"""Checkpoint management for execution contexts.

This module provides the CheckpointManager class which persists an execution
context at checkpoint boundaries: the context is written only when it is
dirty, and its dirty flag is cleared after the write has been committed.
"""

from datetime import datetime, timezone
from typing import List, Optional

from batchstate.core.context import ExecutionContext
from batchstate.core.serialization import ContextSerializer, PickleContextSerializer
from batchstate.core.state.backends import StateBackend
from batchstate.exceptions import CheckpointError, SerializationError
from batchstate.logging import get_logger

logger = get_logger(__name__)

CONTEXT_NAME = "context"


class CheckpointManager:
    """Saves and restores execution contexts for units of work.

    Each unit of work owns one context; the manager keys its checkpoint by
    the unit's name. The context itself stays unaware of persistence.
    """

    def __init__(
        self,
        state_backend: StateBackend,
        serializer: Optional[ContextSerializer] = None,
    ):
        """Initialize CheckpointManager.

        Args:
            state_backend: Backend for payload persistence
            serializer: Serializer for contexts (pickle when omitted)
        """
        self.backend = state_backend
        self.serializer = serializer or PickleContextSerializer()
        logger.info(
            f"CheckpointManager initialized with {self.serializer.name} serializer"
        )

    def get_checkpoint_key(self, unit_of_work: str, name: str = CONTEXT_NAME) -> str:
        """Generate the storage key for a unit of work.

        Args:
            unit_of_work: Name of the unit of work (step or job execution)
            name: Name of the stored object

        Returns:
            Unique checkpoint key
        """
        return f"{unit_of_work}.{name}"

    def save(
        self, unit_of_work: str, context: ExecutionContext, force: bool = False
    ) -> bool:
        """Persist the context if it changed since the last checkpoint.

        Args:
            unit_of_work: Name of the unit of work owning the context
            context: The context to persist
            force: Write even if the context is clean

        Returns:
            True if the context was written, False if it was clean

        Raises:
            CheckpointError: If serialization or the write fails. The dirty
                flag is left untouched in that case.
        """
        if not (force or context.is_dirty()):
            logger.debug(f"Skipping checkpoint for {unit_of_work}: context is clean")
            return False

        key = self.get_checkpoint_key(unit_of_work)

        try:
            payload = self.serializer.serialize(context)
            with self.backend.transaction():
                self.backend.set(key, payload, datetime.now(timezone.utc))
        except Exception as e:
            logger.error(f"Failed to save checkpoint for {key}: {e}")
            raise CheckpointError(
                f"Failed to save checkpoint: {e}",
                unit_of_work=unit_of_work,
                original_error=e,
            ) from e

        context.clear_dirty_flag()
        logger.info(f"Saved checkpoint for {key} ({len(payload)} bytes)")
        return True

    def restore(self, unit_of_work: str) -> ExecutionContext:
        """Load the last saved context for a unit of work.

        Args:
            unit_of_work: Name of the unit of work

        Returns:
            The restored context, or an empty one if nothing was saved.
            Either way the returned context is clean.
        """
        key = self.get_checkpoint_key(unit_of_work)

        try:
            payload = self.backend.get(key)
        except Exception as e:
            logger.error(f"Failed to read checkpoint for {key}: {e}")
            raise CheckpointError(
                f"Failed to read checkpoint: {e}",
                unit_of_work=unit_of_work,
                original_error=e,
            ) from e

        if payload is None:
            logger.info(f"No checkpoint found for {key}, starting with empty context")
            return ExecutionContext()

        try:
            context = self.serializer.deserialize(payload)
        except SerializationError as e:
            raise CheckpointError(
                f"Failed to restore checkpoint: {e.message}",
                unit_of_work=unit_of_work,
                original_error=e,
            ) from e

        context.clear_dirty_flag()
        logger.info(f"Restored checkpoint for {key} ({context.size()} entries)")
        return context

    def delete(self, unit_of_work: str) -> bool:
        """Delete the checkpoint of a unit of work.

        Returns:
            True if a checkpoint existed and was deleted, False otherwise
        """
        key = self.get_checkpoint_key(unit_of_work)

        try:
            deleted = self.backend.delete(key)
        except Exception as e:
            logger.error(f"Failed to delete checkpoint for {key}: {e}")
            raise CheckpointError(
                f"Failed to delete checkpoint: {e}",
                unit_of_work=unit_of_work,
                original_error=e,
            ) from e

        if deleted:
            logger.info(f"Deleted checkpoint for {key}")
        else:
            logger.debug(f"No checkpoint found to delete for {key}")
        return deleted

    def list_checkpoints(self, prefix: Optional[str] = None) -> List[str]:
        """List units of work that have a saved context.

        Args:
            prefix: Optional unit of work prefix to filter by

        Returns:
            Sorted list of unit of work names
        """
        suffix = "." + CONTEXT_NAME
        try:
            keys = self.backend.list_keys(prefix)
        except Exception as e:
            logger.error(f"Failed to list checkpoints: {e}")
            raise CheckpointError(
                f"Failed to list checkpoints: {e}", original_error=e
            ) from e

        return [key[: -len(suffix)] for key in keys if key.endswith(suffix)]

    def close(self) -> None:
        """Close the checkpoint manager and clean up resources."""
        try:
            self.backend.close()
            logger.info("CheckpointManager closed")

        except Exception as e:
            logger.error(f"Error closing CheckpointManager: {e}")
            # Don't raise exception during cleanup
