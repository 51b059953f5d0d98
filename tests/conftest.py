"""Shared test fixtures: in-memory DB, mock TzKT client."""
from __future__ import annotations

import sqlite3

import httpx
import pytest

from stakeboard.clients.tzkt import TzktClient
from stakeboard.config import ResolverConfig, TzktConfig
from stakeboard.db.connection import SCHEMA_PATH

TEST_BASE_URL = "https://tzkt.test"


@pytest.fixture
def mem_conn():
    """In-memory SQLite connection with schema applied."""
    conn = sqlite3.connect(":memory:")
    with open(SCHEMA_PATH) as f:
        conn.executescript(f.read())
    conn.commit()
    yield conn
    conn.close()


@pytest.fixture
def make_client():
    """Build a TzktClient whose requests are answered by ``handler``."""
    def _make(handler, page_size: int = 10000) -> TzktClient:
        return TzktClient(
            TzktConfig(base_url=TEST_BASE_URL, page_size=page_size),
            transport=httpx.MockTransport(handler),
        )
    return _make


@pytest.fixture
def fast_resolver_config():
    """Resolver pacing with all delays switched off."""
    return ResolverConfig(batch_size=2, stagger_delay=0.0, batch_pause=0.0)
