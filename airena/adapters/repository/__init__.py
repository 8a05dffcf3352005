"""Repository adapters - Database implementations."""

from .postgres import PostgresIdentityRepository, PostgresReminderRepository, run_migrations

__all__ = ["PostgresIdentityRepository", "PostgresReminderRepository", "run_migrations"]
