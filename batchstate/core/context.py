"""Execution context for checkpoint/restart of batch units of work.

This module provides the ExecutionContext class, a mutable key-value container
owned by a single unit of work. Values are stored under string keys, read back
through typed accessors, and changes are tracked with a dirty flag so the owner
knows when the state has to be persisted at the next checkpoint.

The context is not thread-safe and holds no reference to any persistence
layer. Take a copy with ``ExecutionContext(other)`` to hand state over.
"""

import copy
import numbers
from collections.abc import Mapping
from typing import Any, Dict, ItemsView, KeysView, Optional, Tuple, Type, Union

from batchstate.exceptions import TypeMismatchError
from batchstate.logging import get_logger

logger = get_logger(__name__)

ExpectedType = Union[Type[Any], Tuple[Type[Any], ...]]

# Distinguishes "no default given" from an explicit default of None
_MISSING = object()


def _hash_value(value: Any) -> int:
    """Hash a stored value, falling back to structure for unhashable ones."""
    try:
        return hash(value)
    except TypeError:
        pass

    if isinstance(value, Mapping):
        return hash(frozenset((k, _hash_value(v)) for k, v in value.items()))
    if isinstance(value, (list, tuple)):
        return hash(tuple(_hash_value(v) for v in value))
    if isinstance(value, set):
        # Must match hash() of an equal frozenset
        return hash(frozenset(value))

    # Unhashable objects with custom equality all share one bucket
    return 0


class ExecutionContext:
    """
    A typed key-value container with change tracking.

    A key is present if and only if it was last put with a non-None value:
    putting None is the same as removing the key. The dirty flag starts
    clean, turns dirty on any change to the content and is only reset by
    clear_dirty_flag().

    Equality and hashing consider the entries only, never the dirty flag.

    Attributes:
        track_equal_puts: When True (default) every put marks the context
            dirty, even if the value equals the one already stored. When
            False, such puts leave the flag unchanged.
    """

    def __init__(
        self,
        source: Optional[Union["ExecutionContext", Mapping]] = None,
        *,
        track_equal_puts: bool = True,
    ):
        """Create an empty context, or a deep copy of another one.

        Args:
            source: Optional context or mapping whose entries are deep-copied.
                None values in a mapping are skipped.
            track_equal_puts: Dirty policy for puts of an equal value
        """
        self.track_equal_puts = track_equal_puts
        self._entries: Dict[str, Any] = {}
        self._dirty = False

        if source is None:
            return

        if isinstance(source, ExecutionContext):
            items = source._entries.items()
        elif isinstance(source, Mapping):
            items = source.items()
        else:
            raise TypeError(
                f"ExecutionContext source must be a context or a mapping, "
                f"got {type(source).__name__}"
            )

        self._entries = {
            key: copy.deepcopy(value) for key, value in items if value is not None
        }
        logger.debug(f"Created execution context with {len(self._entries)} entries")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def put(self, key: str, value: Any) -> None:
        """Store a value under the given key.

        Args:
            key: Key to store the value under
            value: Value to store. None removes the key instead.
        """
        if value is None:
            self.remove(key)
            return

        previous = self._entries.get(key, _MISSING)
        self._entries[key] = value

        if self.track_equal_puts or previous is _MISSING or previous != value:
            self._dirty = True

    def put_string(self, key: str, value: Optional[str]) -> None:
        """Store a string value; None removes the key."""
        self.put(key, value)

    def put_long(self, key: str, value: Optional[int]) -> None:
        """Store an integer value; None removes the key.

        Raises:
            TypeMismatchError: If value is not an integer
        """
        if value is not None and not isinstance(value, numbers.Integral):
            raise TypeMismatchError(key, int, type(value))
        self.put(key, None if value is None else int(value))

    def put_int(self, key: str, value: Optional[int]) -> None:
        """Store an integer value; None removes the key."""
        self.put_long(key, value)

    def put_double(self, key: str, value: Optional[float]) -> None:
        """Store a floating point value; None removes the key.

        Integers are widened to float; anything that is not a real number
        raises TypeMismatchError.
        """
        if value is not None and not isinstance(value, numbers.Real):
            raise TypeMismatchError(key, float, type(value))
        self.put(key, None if value is None else float(value))

    def remove(self, key: str) -> Optional[Any]:
        """Remove the given key.

        Args:
            key: Key to remove

        Returns:
            The removed value, or None if the key was absent
        """
        if key not in self._entries:
            return None

        value = self._entries.pop(key)
        self._dirty = True
        logger.debug(f"Removed key '{key}' from execution context")
        return value

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(
        self,
        key: str,
        expected_type: Optional[ExpectedType] = None,
        default: Any = _MISSING,
    ) -> Any:
        """Return the value stored under the given key.

        Args:
            key: Key to look up
            expected_type: Optional class (or tuple of classes) the stored
                value must be an instance of
            default: Value returned as-is when the key is absent. Defaults
                to None.

        Returns:
            The stored value, or the default when the key is absent

        Raises:
            TypeMismatchError: If the stored value is not an instance of
                expected_type
        """
        if key not in self._entries:
            return None if default is _MISSING else default

        value = self._entries[key]
        if expected_type is not None and not isinstance(value, expected_type):
            raise TypeMismatchError(key, expected_type, type(value))
        return value

    def get_string(self, key: str, default: Any = _MISSING) -> Optional[str]:
        return self.get(key, str, default)

    def get_long(self, key: str, default: Any = _MISSING) -> Optional[int]:
        return self.get(key, int, default)

    def get_int(self, key: str, default: Any = _MISSING) -> Optional[int]:
        return self.get(key, int, default)

    def get_double(self, key: str, default: Any = _MISSING) -> Optional[float]:
        return self.get(key, float, default)

    def contains_key(self, key: str) -> bool:
        return key in self._entries

    def contains_value(self, value: Any) -> bool:
        """Return True if any stored value equals the given value."""
        return any(stored == value for stored in self._entries.values())

    def is_empty(self) -> bool:
        return not self._entries

    def size(self) -> int:
        return len(self._entries)

    def keys(self) -> KeysView:
        """Return a view over a snapshot of the keys."""
        return dict(self._entries).keys()

    def items(self) -> ItemsView:
        """Return a view over a snapshot of the entries."""
        return dict(self._entries).items()

    def to_dict(self) -> Dict[str, Any]:
        """Return the entries as a new plain dictionary."""
        return dict(self._entries)

    # ------------------------------------------------------------------
    # Dirty flag
    # ------------------------------------------------------------------

    def is_dirty(self) -> bool:
        """Return True if the content changed since the last clear."""
        return self._dirty

    def clear_dirty_flag(self) -> None:
        """Mark the current content as persisted."""
        self._dirty = False

    # ------------------------------------------------------------------
    # Protocols
    # ------------------------------------------------------------------

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExecutionContext):
            return NotImplemented
        return self._entries == other._entries

    def __hash__(self) -> int:
        return hash(
            frozenset((key, _hash_value(value)) for key, value in self._entries.items())
        )

    def __repr__(self) -> str:
        return f"ExecutionContext({self._entries!r})"

    def __str__(self) -> str:
        return str(self._entries)

    def __getstate__(self) -> Dict[str, Any]:
        # The dirty flag is runtime state of the owning unit of work
        return {"entries": self._entries, "track_equal_puts": self.track_equal_puts}

    def __setstate__(self, state: Dict[str, Any]) -> None:
        self._entries = state["entries"]
        self.track_equal_puts = state.get("track_equal_puts", True)
        self._dirty = False
