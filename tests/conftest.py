import logging
from io import StringIO

import pytest

from common.logging_adapter import KeyValContextLogger


@pytest.fixture
def log_stream():
    return StringIO("")


@pytest.fixture
def out_stream():
    return StringIO("")


@pytest.fixture
def string_logger(log_stream):
    formatter = logging.Formatter("level=%(levelname)s logger=%(name)s %(message)s")
    handler = logging.StreamHandler(stream=log_stream)
    handler.setLevel("DEBUG")
    handler.setFormatter(formatter)
    a_logger = logging.getLogger("string_logger")
    a_logger.propagate = False
    a_logger.setLevel("DEBUG")
    # handlers of previous tests would keep writing into their own streams
    a_logger.handlers.clear()
    a_logger.addHandler(handler)
    return KeyValContextLogger(logger=a_logger)
