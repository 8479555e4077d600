"""Settings for batchstate.

Settings are resolved in three layers, later ones winning:

1. Defaults declared on BatchStateSettings
2. A YAML file, either flat or nested under a top-level ``batchstate`` key
3. ``BATCHSTATE_*`` environment variables
"""

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from batchstate.core.context import ExecutionContext
from batchstate.core.serialization import (
    SERIALIZERS,
    ContextSerializer,
    PickleContextSerializer,
    get_serializer,
)
from batchstate.core.state.backends import DuckDBStateBackend
from batchstate.exceptions import ConfigurationError
from batchstate.logging import LOG_LEVELS, get_logger

logger = get_logger(__name__)

ENV_PREFIX = "BATCHSTATE_"
CONFIG_SECTION = "batchstate"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class BatchStateSettings:
    """Resolved settings.

    Attributes:
        serializer: Name of the checkpoint serializer ("pickle" or "json")
        pickle_protocol: Protocol used by the pickle serializer
        track_equal_puts: Dirty policy applied to new contexts
        state_database: DuckDB database path for checkpoints
        log_level: Level name for the batchstate loggers
    """

    serializer: str = PickleContextSerializer.name
    pickle_protocol: int = 5
    track_equal_puts: bool = True
    state_database: str = ":memory:"
    log_level: str = "info"

    def __post_init__(self):
        if self.serializer not in SERIALIZERS:
            raise ConfigurationError(
                f"Unknown serializer '{self.serializer}'",
                suggested_actions=[f"Use one of: {', '.join(sorted(SERIALIZERS))}"],
            )
        if self.pickle_protocol < 0:
            raise ConfigurationError(
                f"pickle_protocol must be non-negative, got {self.pickle_protocol}"
            )
        if self.log_level.lower() not in LOG_LEVELS:
            raise ConfigurationError(
                f"Unknown log level '{self.log_level}'",
                suggested_actions=[f"Use one of: {', '.join(LOG_LEVELS)}"],
            )

    def new_context(
        self, source: Optional[Union[ExecutionContext, Mapping]] = None
    ) -> ExecutionContext:
        """Create a context using the configured dirty policy."""
        return ExecutionContext(source, track_equal_puts=self.track_equal_puts)

    def build_serializer(self) -> ContextSerializer:
        if self.serializer == PickleContextSerializer.name:
            return get_serializer(self.serializer, protocol=self.pickle_protocol)
        return get_serializer(self.serializer)

    def build_backend(self) -> DuckDBStateBackend:
        return DuckDBStateBackend(database=self.state_database)


def _coerce(name: str, raw: Any, target_type: type) -> Any:
    """Convert a raw file or environment value to the field's type."""
    if target_type is bool:
        if isinstance(raw, bool):
            return raw
        text = str(raw).strip().lower()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
        raise ConfigurationError(f"Setting '{name}' expects a boolean, got {raw!r}")

    if target_type is int:
        if isinstance(raw, bool):
            raise ConfigurationError(f"Setting '{name}' expects an integer, got {raw!r}")
        try:
            return int(raw)
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"Setting '{name}' expects an integer, got {raw!r}"
            ) from None

    return str(raw)


def _field_types() -> Dict[str, type]:
    defaults = BatchStateSettings()
    return {f.name: type(getattr(defaults, f.name)) for f in fields(BatchStateSettings)}


def _read_yaml(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigurationError(f"Settings file not found: {path}") from None
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in settings file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings file {path} must contain a mapping")

    section = data.get(CONFIG_SECTION, data)
    if not isinstance(section, dict):
        raise ConfigurationError(
            f"'{CONFIG_SECTION}' section in {path} must be a mapping"
        )
    return section


def load_settings(
    path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None
) -> BatchStateSettings:
    """Load settings from defaults, an optional YAML file and the environment.

    Args:
        path: Optional path to a YAML settings file
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Resolved settings

    Raises:
        ConfigurationError: If a value is invalid or the file cannot be read
    """
    environ = os.environ if environ is None else environ
    types = _field_types()
    overrides: Dict[str, Any] = {}

    if path:
        for name, raw in _read_yaml(path).items():
            if name not in types:
                logger.warning(f"Ignoring unknown setting '{name}' in {path}")
                continue
            overrides[name] = _coerce(name, raw, types[name])
        logger.debug(f"Loaded {len(overrides)} settings from {path}")

    for name, target_type in types.items():
        env_name = ENV_PREFIX + name.upper()
        if env_name in environ:
            overrides[name] = _coerce(name, environ[env_name], target_type)
            logger.debug(f"Setting '{name}' overridden by {env_name}")

    return replace(BatchStateSettings(), **overrides)
