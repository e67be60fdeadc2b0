"""Pytest fixtures shared across the test suite."""

import os

import pytest

from db import utils as db_utils
from tests.app_helpers import load_app


@pytest.fixture(autouse=True)
def reset_database_state():
    """Reset the cached fallback engine and working directory between tests."""

    cwd = os.getcwd()
    db_utils.set_fallback_connection(None)

    yield

    engine = db_utils._fallback_connection
    if engine is not None:
        engine.dispose()
    db_utils.set_fallback_connection(None)
    os.chdir(cwd)


@pytest.fixture
def app_module(tmp_path):
    return load_app(tmp_path)


@pytest.fixture
def client(app_module):
    return app_module.app.test_client()
