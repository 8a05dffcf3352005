"""
PostgreSQL repository adapters - Implement the domain's repository protocols.

This module provides the PostgreSQL implementations of the identity and
reminder repository ports using psycopg3 with raw SQL.

Atomicity Design:
-----------------
Every state change the domain relies on is a single conditional statement,
so concurrent callers are serialized by the row lock PostgreSQL takes for
UPDATE/DELETE and by unique constraints for INSERT:

1. **create_identity**: INSERT ... ON CONFLICT (email) DO NOTHING. The
   UNIQUE constraint on email decides duplicate registrations.

2. **consume_otc**: UPDATE ... WHERE otc_hash = <hash that was checked>.
   A compare-and-swap on the stored hash, so one code is consumed once.

3. **approve_host / delete_pending_host**: conditional on
   role = 'HOST' AND host_approved = FALSE, so a second decision on the same
   identity affects zero rows. Approval writes the flag, its timestamp and a
   fresh OTC in the same statement. Deletion first takes the row with
   SELECT ... FOR UPDATE and holds it while the caller's before_delete hook
   runs, so an approval arriving meanwhile waits and then finds no row.

4. **claim_reminder**: INSERT ... ON CONFLICT (recipient_id, ledger_key)
   DO NOTHING RETURNING. Exactly one concurrent sweep gets the row back.
"""

import logging
from collections.abc import Callable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import UUID

from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from airena.domain.ports import (
    Event,
    EventStatus,
    Identity,
    LedgerKey,
    NewIdentity,
    Recipient,
    Role,
)

logger = logging.getLogger(__name__)

_IDENTITY_COLUMNS = """
    id, email, password_hash, first_name, last_name, role, email_verified,
    otc_hash, otc_expires_at, host_approved, host_approved_at,
    host_requested_at, last_login_at, created_at
"""


def _to_identity(row: dict[str, Any]) -> Identity:
    return Identity(
        id=row["id"],
        email=row["email"],
        password_hash=row["password_hash"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        role=Role(row["role"]),
        email_verified=row["email_verified"],
        otc_hash=row["otc_hash"],
        otc_expires_at=row["otc_expires_at"],
        host_approved=row["host_approved"],
        host_approved_at=row["host_approved_at"],
        host_requested_at=row["host_requested_at"],
        last_login_at=row["last_login_at"],
        created_at=row["created_at"],
    )


class PostgresIdentityRepository:
    """
    Implements IdentityRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def create_identity(self, identity: NewIdentity) -> Identity | None:
        sql = f"""
            INSERT INTO identities (id, email, password_hash, first_name, last_name, role)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (email) DO NOTHING
            RETURNING {_IDENTITY_COLUMNS}
        """
        params = (
            identity.id,
            identity.email,
            identity.password_hash,
            identity.first_name,
            identity.last_name,
            identity.role.value,
        )
        return self._fetch_identity(sql, params)

    def get_by_id(self, identity_id: UUID) -> Identity | None:
        sql = f"SELECT {_IDENTITY_COLUMNS} FROM identities WHERE id = %s"
        return self._fetch_identity(sql, (identity_id,))

    def get_by_email(self, email: str) -> Identity | None:
        sql = f"SELECT {_IDENTITY_COLUMNS} FROM identities WHERE email = %s"
        return self._fetch_identity(sql, (email,))

    def store_otc(self, identity_id: UUID, otc_hash: str, expires_at: datetime) -> bool:
        sql = """
            UPDATE identities
            SET otc_hash = %s, otc_expires_at = %s
            WHERE id = %s
        """
        return self._execute(sql, (otc_hash, expires_at, identity_id)) == 1

    def consume_otc(self, identity_id: UUID, otc_hash: str) -> bool:
        sql = """
            UPDATE identities
            SET email_verified = TRUE, otc_hash = NULL, otc_expires_at = NULL
            WHERE id = %s AND otc_hash = %s
        """
        return self._execute(sql, (identity_id, otc_hash)) == 1

    def clear_otc(self, identity_id: UUID, otc_hash: str) -> None:
        sql = """
            UPDATE identities
            SET otc_hash = NULL, otc_expires_at = NULL
            WHERE id = %s AND otc_hash = %s
        """
        self._execute(sql, (identity_id, otc_hash))

    def mark_host_requested(self, identity_id: UUID, requested_at: datetime) -> Identity | None:
        # The first request time is kept when a host verifies again
        sql = f"""
            UPDATE identities
            SET host_requested_at = COALESCE(host_requested_at, %s)
            WHERE id = %s
            RETURNING {_IDENTITY_COLUMNS}
        """
        return self._fetch_identity(sql, (requested_at, identity_id))

    def approve_host(
        self,
        identity_id: UUID,
        approved_at: datetime,
        otc_hash: str,
        otc_expires_at: datetime,
    ) -> Identity | None:
        sql = f"""
            UPDATE identities
            SET host_approved = TRUE,
                host_approved_at = %s,
                otc_hash = %s,
                otc_expires_at = %s
            WHERE id = %s AND role = 'HOST' AND host_approved = FALSE
            RETURNING {_IDENTITY_COLUMNS}
        """
        return self._fetch_identity(sql, (approved_at, otc_hash, otc_expires_at, identity_id))

    def delete_pending_host(
        self,
        identity_id: UUID,
        before_delete: Callable[[Identity], None] | None = None,
    ) -> bool:
        select_sql = f"""
            SELECT {_IDENTITY_COLUMNS}
            FROM identities
            WHERE id = %s AND role = 'HOST' AND host_approved = FALSE
            FOR UPDATE
        """
        delete_sql = "DELETE FROM identities WHERE id = %s"
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(select_sql, (identity_id,))
            row = cursor.fetchone()
            if row is None:
                conn.rollback()
                return False
            if before_delete is not None:
                before_delete(_to_identity(row))
            cursor.execute(delete_sql, (identity_id,))
            conn.commit()
        return True

    def list_pending_hosts(self) -> list[Identity]:
        sql = f"""
            SELECT {_IDENTITY_COLUMNS}
            FROM identities
            WHERE role = 'HOST'
              AND host_approved = FALSE
              AND host_requested_at IS NOT NULL
            ORDER BY host_requested_at DESC
        """
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql)
            return [_to_identity(row) for row in cursor.fetchall()]

    def list_hosts(self) -> list[Identity]:
        sql = f"""
            SELECT {_IDENTITY_COLUMNS}
            FROM identities
            WHERE role = 'HOST'
            ORDER BY created_at DESC
        """
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql)
            return [_to_identity(row) for row in cursor.fetchall()]

    def record_login(self, identity_id: UUID, logged_in_at: datetime) -> None:
        sql = "UPDATE identities SET last_login_at = %s WHERE id = %s"
        self._execute(sql, (logged_in_at, identity_id))

    def _fetch_identity(self, sql: str, params: tuple) -> Identity | None:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, params)
            row = cursor.fetchone()
            conn.commit()
        return _to_identity(row) if row is not None else None

    def _execute(self, sql: str, params: tuple) -> int:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, params)
            conn.commit()
            return cursor.rowcount


class PostgresReminderRepository:
    """
    Implements ReminderRepository protocol via psycopg3.

    Events, participants and submissions are only read; the reminder
    ledger is only ever inserted into.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def list_events_due(
        self,
        statuses: Sequence[EventStatus],
        after: datetime,
        until: datetime | None = None,
    ) -> list[Event]:
        sql = """
            SELECT e.id, e.title, e.submission_deadline, e.status,
                   COALESCE(o.first_name || ' ' || o.last_name, '') AS organizer_name
            FROM events e
            LEFT JOIN identities o ON o.id = e.organizer_id
            WHERE e.status = ANY(%s)
              AND e.submission_deadline > %s
              AND (%s::timestamptz IS NULL OR e.submission_deadline <= %s)
            ORDER BY e.submission_deadline
        """
        params = ([status.value for status in statuses], after, until, until)
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, params)
            rows = cursor.fetchall()

        return [
            Event(
                id=row["id"],
                title=row["title"],
                submission_deadline=row["submission_deadline"],
                status=EventStatus(row["status"]),
                organizer_name=row["organizer_name"],
            )
            for row in rows
        ]

    def list_pending_recipients(self, event_id: UUID) -> list[Recipient]:
        # A non-draft submission by the participant or by their team qualifies
        sql = """
            SELECT i.id, i.email, i.first_name, i.last_name
            FROM event_participants p
            JOIN identities i ON i.id = p.identity_id
            WHERE p.event_id = %s
              AND NOT EXISTS (
                  SELECT 1 FROM submissions s
                  WHERE s.event_id = p.event_id
                    AND s.status <> 'DRAFT'
                    AND (s.participant_id = p.id
                         OR (p.team_id IS NOT NULL AND s.team_id = p.team_id))
              )
            ORDER BY i.email
        """
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, (event_id,))
            rows = cursor.fetchall()

        return [
            Recipient(
                identity_id=row["id"],
                email=row["email"],
                first_name=row["first_name"],
                last_name=row["last_name"],
            )
            for row in rows
        ]

    def claim_reminder(self, key: LedgerKey, claimed_at: datetime) -> bool:
        sql = """
            INSERT INTO reminder_ledger
                (recipient_id, event_id, reminder_class, reminder_date, ledger_key, created_at)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (recipient_id, ledger_key) DO NOTHING
            RETURNING ledger_key
        """
        params = (
            key.recipient_id,
            key.event_id,
            key.reminder_class.value,
            key.reminder_date,
            key.name,
            claimed_at,
        )
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, params)
            claimed = cursor.fetchone() is not None
            conn.commit()
        return claimed


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: airena/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
