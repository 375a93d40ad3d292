import os
import pytest


@pytest.fixture
def clean_env():
    """Drop webhook settings from the environment and restore it afterwards."""
    original_env = os.environ.copy()
    for name in list(os.environ):
        if name.startswith("CATTLE_WEBHOOK_"):
            del os.environ[name]

    yield os.environ

    os.environ.clear()
    os.environ.update(original_env)
