import pytest
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from recovery_engine.app import app, limiter
from recovery_engine.catalog import load_catalog

@pytest.fixture()
def client():
    app.config.update(TESTING=True)
    limiter.enabled = False
    with app.test_client() as client:
        yield client

@pytest.fixture(scope="session")
def catalog():
    return load_catalog()
