"""
Pytest configuration and fixtures for linreg tests.

This module provides:
- An in-memory SQLite database client with the schema created
- A controllable clock for dataset timestamps
- A dataset store and a FastAPI test client built on both
"""

import os
import sys

import pytest
from fastapi.testclient import TestClient

# Add the parent directory to the path to import the package
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from linreg.components.config import Config
from linreg.components.server import Server
from linreg.database import DatabaseClient, DatabaseConfig
from linreg.store import DatasetStore


class FakeClock:
    """Clock returning a fixed epoch-millisecond value until moved."""

    def __init__(self, now: int = 1_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int = 1) -> int:
        self.now += ms
        return self.now


@pytest.fixture
def clock():
    """Fixture that returns a controllable clock."""
    return FakeClock()


@pytest.fixture
def db_client():
    """Fixture that yields a client bound to a fresh in-memory database."""
    client = DatabaseClient(DatabaseConfig(url="sqlite://"))
    client.create_schema()
    yield client
    client.shutdown()


@pytest.fixture
def store(db_client, clock):
    """Fixture that returns a dataset store using the fake clock."""
    return DatasetStore(db_client, clock=clock)


@pytest.fixture
def api(store):
    """Fixture that returns an HTTP test client for the server."""
    server = Server(store, Config({'database': {'url': 'sqlite://'}}))
    with TestClient(server.app) as client:
        yield client
