import logging

import pytest


@pytest.fixture(autouse=True)
def restore_root_logging():
    """Commands reconfigure the root logger; put it back after each test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    # pytest manages its own capture handlers per phase
    root.handlers = [h for h in handlers if type(h) is logging.StreamHandler]
    root.setLevel(level)
