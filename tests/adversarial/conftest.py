"""
Shared fixtures for adversarial tests.

Provides common test infrastructure for race condition and timing tests.
Skipped when PostgreSQL is unreachable.
"""

from collections.abc import Callable, Generator
from uuid import uuid4

import bcrypt
import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from airena.adapters.repository.postgres import (
    PostgresIdentityRepository,
    PostgresReminderRepository,
    run_migrations,
)
from airena.config.settings import get_settings
from airena.domain.ports import Identity, NewIdentity, Role


@pytest.fixture(scope="module")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool for adversarial tests."""
    settings = get_settings()
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=20,
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
def repository(pool: ConnectionPool) -> PostgresIdentityRepository:
    """Create repository instance for each test."""
    return PostgresIdentityRepository(pool)


@pytest.fixture
def reminders(pool: ConnectionPool) -> PostgresReminderRepository:
    return PostgresReminderRepository(pool)


@pytest.fixture(autouse=True)
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Clean identity and ledger tables before each test."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM reminder_ledger")
        conn.execute("DELETE FROM submissions")
        conn.execute("DELETE FROM event_participants")
        conn.execute("DELETE FROM events")
        conn.execute("DELETE FROM identities")
        conn.commit()
    yield


@pytest.fixture
def create_identity(repository: PostgresIdentityRepository) -> Callable[..., Identity]:
    """Factory storing UNVERIFIED identities with a cost-10 password hash."""

    def create(email: str, password: str = "password123", role: Role = Role.PARTICIPANT) -> Identity:
        password_hash = bcrypt.hashpw(password.encode(), bcrypt.gensalt(10)).decode()
        identity = repository.create_identity(
            NewIdentity(
                id=uuid4(),
                email=email,
                password_hash=password_hash,
                first_name="Test",
                last_name="User",
                role=role,
            )
        )
        assert identity is not None
        return identity

    return create
