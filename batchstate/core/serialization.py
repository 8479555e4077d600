"""Serializers that turn an ExecutionContext into bytes and back.

The context itself knows nothing about wire formats. A ContextSerializer is
handed to whatever persists the context (see CheckpointManager) so the format
can be swapped without touching the container:

- PickleContextSerializer: Python object serialization, any picklable value
- JsonContextSerializer: portable UTF-8 JSON for primitive values, lists,
  tuples, string-keyed dicts and registered dataclass value types
"""

import dataclasses
import json
import pickle
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Type

from batchstate.core.context import ExecutionContext
from batchstate.exceptions import SerializationError
from batchstate.logging import get_logger

logger = get_logger(__name__)

TYPE_TAG = "@type"
TUPLE_TAG = "@tuple"
RESERVED_KEYS = frozenset({TYPE_TAG, TUPLE_TAG})
ENTRIES_FIELD = "entries"
FORMAT_VERSION = 1


class ContextSerializer(ABC):
    """Abstract interface for context serialization."""

    name: str = ""

    @abstractmethod
    def serialize(self, context: ExecutionContext) -> bytes:
        """Convert a context to bytes.

        Args:
            context: The context to serialize

        Returns:
            Serialized payload

        Raises:
            SerializationError: If a value cannot be serialized
        """

    @abstractmethod
    def deserialize(self, data: bytes) -> ExecutionContext:
        """Rebuild a context from bytes.

        Args:
            data: Payload produced by serialize()

        Returns:
            A clean context equal to the one that was serialized

        Raises:
            SerializationError: If the payload is corrupt or not a context
        """


class PickleContextSerializer(ContextSerializer):
    """Serializer based on the pickle protocol."""

    name = "pickle"

    def __init__(self, protocol: int = pickle.HIGHEST_PROTOCOL):
        self.protocol = protocol

    def serialize(self, context: ExecutionContext) -> bytes:
        try:
            return pickle.dumps(context, protocol=self.protocol)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            logger.error(f"Failed to pickle execution context: {e}")
            raise SerializationError(
                f"Execution context is not picklable: {e}",
                context={"serializer": self.name},
            ) from e

    def deserialize(self, data: bytes) -> ExecutionContext:
        try:
            restored = pickle.loads(data)
        except Exception as e:
            logger.error(f"Failed to unpickle execution context: {e}")
            raise SerializationError(
                f"Payload is not a valid pickled execution context: {e}",
                context={"serializer": self.name},
            ) from e

        if not isinstance(restored, ExecutionContext):
            raise SerializationError(
                f"Payload holds {type(restored).__name__}, not an ExecutionContext",
                context={"serializer": self.name},
            )
        return restored


class ValueTypeRegistry:
    """Registry of dataclass value types the JSON serializer may rebuild."""

    def __init__(self):
        self._types: Dict[str, Type[Any]] = {}

    @staticmethod
    def type_name(cls: Type[Any]) -> str:
        return f"{cls.__module__}:{cls.__qualname__}"

    def register(self, cls: Type[Any]) -> Type[Any]:
        """Register a dataclass; usable as a class decorator.

        Raises:
            SerializationError: If cls is not a dataclass
        """
        if not (isinstance(cls, type) and dataclasses.is_dataclass(cls)):
            raise SerializationError(
                f"Only dataclasses can be registered as value types, got {cls!r}"
            )
        self._types[self.type_name(cls)] = cls
        logger.debug(f"Registered value type {self.type_name(cls)}")
        return cls

    def is_registered(self, cls: Type[Any]) -> bool:
        return self._types.get(self.type_name(cls)) is cls

    def resolve(self, name: str) -> Type[Any]:
        try:
            return self._types[name]
        except KeyError:
            raise SerializationError(f"Unknown value type '{name}'") from None


class JsonContextSerializer(ContextSerializer):
    """Serializer producing UTF-8 JSON documents.

    Payload layout::

        {"version": 1, "entries": {"key": value, ...}}

    Supported values are str, int, float, bool, None inside containers,
    lists, tuples, dicts with string keys and registered dataclasses.
    Registered dataclass values are written as objects carrying a ``@type``
    tag with their fields; tuples as ``{"@tuple": [...]}``. Anything else,
    including dict keys that are not strings or that collide with a tag,
    raises SerializationError instead of coming back changed.
    """

    name = "json"

    def __init__(self, registry: Optional[ValueTypeRegistry] = None):
        self.registry = registry or ValueTypeRegistry()

    def serialize(self, context: ExecutionContext) -> bytes:
        try:
            entries = self._encode_value(context.to_dict(), "entries")
            document = {"version": FORMAT_VERSION, ENTRIES_FIELD: entries}
            return json.dumps(document, allow_nan=True).encode("utf-8")
        except SerializationError as e:
            logger.error(f"Failed to encode execution context as JSON: {e.message}")
            raise
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to encode execution context as JSON: {e}")
            raise SerializationError(
                f"Execution context is not JSON serializable: {e}",
                context={"serializer": self.name},
            ) from e

    def deserialize(self, data: bytes) -> ExecutionContext:
        try:
            document = json.loads(data.decode("utf-8"), object_hook=self._decode_value)
        except (UnicodeDecodeError, ValueError, TypeError) as e:
            logger.error(f"Failed to decode execution context JSON: {e}")
            raise SerializationError(
                f"Payload is not a valid JSON execution context: {e}",
                context={"serializer": self.name},
            ) from e

        if not isinstance(document, dict) or not isinstance(
            document.get(ENTRIES_FIELD), dict
        ):
            raise SerializationError(
                "JSON payload has no 'entries' object",
                context={"serializer": self.name},
            )

        return ExecutionContext(document[ENTRIES_FIELD])

    def _unsupported(self, path: str, reason: str) -> SerializationError:
        return SerializationError(
            f"Value at '{path}' is not JSON serializable: {reason}",
            context={"serializer": self.name, "path": path},
            suggested_actions=["Use the pickle serializer for arbitrary values"],
        )

    def _encode_value(self, value: Any, path: str) -> Any:
        """Convert a value to plain JSON data, tagging tuples and dataclasses."""
        if value is None or isinstance(value, (str, bool, int, float)):
            return value

        if isinstance(value, list):
            return [self._encode_value(v, f"{path}[{i}]") for i, v in enumerate(value)]

        if isinstance(value, tuple):
            return {
                TUPLE_TAG: [
                    self._encode_value(v, f"{path}[{i}]") for i, v in enumerate(value)
                ]
            }

        if isinstance(value, dict):
            encoded = {}
            for key, item in value.items():
                if not isinstance(key, str):
                    raise self._unsupported(
                        path, f"dict key {key!r} is a {type(key).__name__}, not str"
                    )
                if key in RESERVED_KEYS:
                    raise self._unsupported(path, f"dict key '{key}' is reserved")
                encoded[key] = self._encode_value(item, f"{path}.{key}")
            return encoded

        cls = type(value)
        if dataclasses.is_dataclass(value) and self.registry.is_registered(cls):
            encoded = {
                field.name: self._encode_value(
                    getattr(value, field.name), f"{path}.{field.name}"
                )
                for field in dataclasses.fields(value)
            }
            encoded[TYPE_TAG] = self.registry.type_name(cls)
            return encoded

        raise self._unsupported(path, f"unsupported type {cls.__name__}")

    def _decode_value(self, obj: Dict[str, Any]) -> Any:
        if TUPLE_TAG in obj and len(obj) == 1:
            return tuple(obj[TUPLE_TAG])
        if TYPE_TAG not in obj:
            return obj
        fields = dict(obj)
        cls = self.registry.resolve(fields.pop(TYPE_TAG))
        try:
            return cls(**fields)
        except TypeError as e:
            raise SerializationError(
                f"Cannot rebuild {cls.__name__} from JSON fields: {e}"
            ) from e


SERIALIZERS: Dict[str, Type[ContextSerializer]] = {
    PickleContextSerializer.name: PickleContextSerializer,
    JsonContextSerializer.name: JsonContextSerializer,
}


def get_serializer(name: str, **options: Any) -> ContextSerializer:
    """Create a serializer by name.

    Args:
        name: Serializer name ("pickle" or "json")
        **options: Keyword arguments for the serializer constructor

    Returns:
        Serializer instance

    Raises:
        SerializationError: If the name is unknown
    """
    serializer_class = SERIALIZERS.get(name.lower())
    if serializer_class is None:
        raise SerializationError(
            f"Unknown serializer '{name}'",
            suggested_actions=[f"Use one of: {', '.join(sorted(SERIALIZERS))}"],
        )
    return serializer_class(**options)


def clone(
    context: ExecutionContext, serializer: Optional[ContextSerializer] = None
) -> ExecutionContext:
    """Deep copy a context through a full serialize/deserialize cycle."""
    serializer = serializer or PickleContextSerializer()
    return serializer.deserialize(serializer.serialize(context))
