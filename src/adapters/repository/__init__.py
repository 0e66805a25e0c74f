"""Repository adapters - Database and in-memory implementations."""

from .memory import InMemoryAccountRepository, InMemoryVerificationStore
from .postgres import PostgresAccountRepository, PostgresVerificationStore, run_migrations

__all__ = [
    "InMemoryAccountRepository",
    "InMemoryVerificationStore",
    "PostgresAccountRepository",
    "PostgresVerificationStore",
    "run_migrations",
]
