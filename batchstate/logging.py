import logging
import sys
from typing import Any, Dict

DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Map string log levels to logging constants
LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

# Modules that produce verbose, technical output
# These will be set to WARNING by default unless verbose mode is enabled
TECHNICAL_MODULES = [
    "batchstate.core.context",
    "batchstate.core.serialization",
    "batchstate.core.state.backends",
]


def get_logger(name: str) -> logging.Logger:
    """Return a logger with the specified name.

    Args:
        name: The name for the logger, typically __name__

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def configure_logging(
    verbose: bool = False,
    quiet: bool = False,
    level: str = "",
) -> None:
    """Configure logging settings based on command line flags.

    Args:
        verbose: Whether to enable verbose mode (shows all debug logs)
        quiet: Whether to enable quiet mode (only shows warnings and errors)
        level: Explicit level name from settings, used when no flag is given
    """
    # Determine the root logging level based on flags
    if quiet:
        root_level = logging.WARNING  # Only warnings and errors
    elif verbose:
        root_level = logging.DEBUG  # All debug logs
    else:
        root_level = LOG_LEVELS.get(level.lower(), DEFAULT_LOG_LEVEL)

    # Configure the package logger, leaving the host application's root alone
    package_logger = logging.getLogger("batchstate")
    package_logger.setLevel(root_level)

    # Clear existing handlers to avoid duplicate logs
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(DEFAULT_FORMAT)
    handler.setFormatter(formatter)
    package_logger.addHandler(handler)
    package_logger.propagate = False

    # Set specific levels for technical modules
    for module_name in TECHNICAL_MODULES:
        module_logger = logging.getLogger(module_name)

        # In verbose mode, show all logs from technical modules
        # Otherwise, only show warnings and above
        if verbose:
            module_logger.setLevel(logging.DEBUG)
        else:
            module_logger.setLevel(logging.WARNING)


def get_logging_status() -> Dict[str, Any]:
    """Get the current logging status of the batchstate loggers.

    Returns:
        Dictionary with logging status information
    """
    package_logger = logging.getLogger("batchstate")

    modules = {}
    for name in logging.root.manager.loggerDict:
        if not name.startswith("batchstate"):
            continue
        logger = logging.getLogger(name)
        modules[name] = {
            "level": logging.getLevelName(logger.level),
            "propagate": logger.propagate,
            "has_handlers": bool(logger.handlers),
        }

    return {
        "package_level": logging.getLevelName(package_logger.level),
        "modules": modules,
    }

