import logging

import pytest


@pytest.fixture(autouse=True)
def restore_root_logging():
    """Undo ``configure_logging`` calls made by a test.

    ``basicConfig(force=True)`` installs a plain ``StreamHandler`` on the root
    logger; pytest's own capture handlers are subclasses and are left alone.
    """
    root = logging.getLogger()
    level = root.level
    yield
    for handler in root.handlers[:]:
        if type(handler) is logging.StreamHandler:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
