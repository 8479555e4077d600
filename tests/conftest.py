"""Pytest configuration for batchstate tests."""

import logging

import pytest

from batchstate.logging import TECHNICAL_MODULES


@pytest.fixture(autouse=True)
def reset_batchstate_logging():
    """Drop handlers installed by configure_logging() during a test.

    CLI tests configure logging against the runner's captured stdout, which
    is closed once the invocation returns.
    """
    yield

    package_logger = logging.getLogger("batchstate")
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True

    for module_name in TECHNICAL_MODULES:
        logging.getLogger(module_name).setLevel(logging.NOTSET)
