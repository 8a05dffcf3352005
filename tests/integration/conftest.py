"""
Shared fixtures for integration tests.

Tests that request `pool` run against a real PostgreSQL database (at
DATABASE_URL) and are skipped when it is unreachable.
"""

from collections.abc import Generator

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from airena.adapters.repository.postgres import run_migrations
from airena.config.settings import get_settings


@pytest.fixture(scope="module")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool for integration tests and apply migrations."""
    settings = get_settings()
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=10,
        open=False,
    )
    try:
        pool.open(wait=True, timeout=5)
    except PoolTimeout:
        pool.close()
        pytest.skip("PostgreSQL is not reachable")
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Remove all rows before each test."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM reminder_ledger")
        conn.execute("DELETE FROM submissions")
        conn.execute("DELETE FROM event_participants")
        conn.execute("DELETE FROM events")
        conn.execute("DELETE FROM identities")
        conn.commit()
    yield
