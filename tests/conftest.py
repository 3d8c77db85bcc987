import logging

import pytest

from mirrorsync.reporting import LOGGER_NAME


@pytest.fixture(autouse=True)
def reset_mirrorsync_logger():
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
