import logging

import pytest

from degenerate import logging_config


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drops handlers installed by `setup_logging` so they never outlive a test's captured stderr."""
    yield
    logger = logging.getLogger(logging_config.PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logging_config._handler = None
    logging_config._saved_level = None


def feeder(lines):
    """Returns a `read_line` callable serving `lines`, then end of input."""
    it = iter(lines)

    def read_line(prompt):
        try:
            return next(it)
        except StopIteration:
            raise EOFError
    return read_line
