"""
PostgreSQL repository adapters - Implement VerificationStore and AccountRepository.

This module provides the PostgreSQL implementations of the domain's
storage ports using psycopg3 with raw SQL.

Concurrency Design:
------------------
Several service instances may share one database, so per-identity
atomicity is delegated to PostgreSQL rather than to client-side locks:

1. **issue()**: a single INSERT ... ON CONFLICT DO UPDATE ... WHERE
   statement. The primary key on identity serializes concurrent writers,
   and the WHERE clause only lets the update through once the previous
   code has left the throttle window. rowcount tells whether this call won.

2. **verify()**: SELECT ... FOR UPDATE followed by DELETE in one
   transaction. A concurrent verify for the same identity blocks on the
   row lock and, once the first transaction commits, finds no row.

3. **secrets.compare_digest()**: used for code comparison so response
   time does not depend on how many leading digits matched.
"""

import logging
import secrets
from pathlib import Path

import psycopg
from psycopg_pool import ConnectionPool

from src.domain.codes import DEFAULT_CODE_LENGTH, generate_verification_code
from src.domain.exceptions import StorageError

logger = logging.getLogger(__name__)


class PostgresVerificationStore:
    """
    Implements VerificationStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(
        self,
        pool: ConnectionPool,
        throttle_seconds: int,
        ttl_seconds: int,
        code_length: int = DEFAULT_CODE_LENGTH,
    ) -> None:
        """
        Initialize store with connection pool and code policy.

        Args:
            pool: psycopg3 ConnectionPool for database connections
            throttle_seconds: Minimum age of a code before it can be replaced
            ttl_seconds: Age after which a code no longer verifies
            code_length: Number of digits in generated codes
        """
        self._pool = pool
        self._throttle_seconds = throttle_seconds
        self._ttl_seconds = ttl_seconds
        self._code_length = code_length

    def issue(self, identity: str) -> str | None:
        """
        Atomically issue a new code for an identity.

        A new row is inserted, or an existing row older than the throttle
        window is overwritten. A younger row is left untouched.

        Args:
            identity: Canonical identity handle

        Returns:
            The issued code, or None if throttled
        """
        sql = """
            INSERT INTO verification_codes (identity, code, issued_at)
            VALUES (%s, %s, NOW())
            ON CONFLICT (identity) DO UPDATE
            SET code = EXCLUDED.code,
                issued_at = NOW()
            WHERE verification_codes.issued_at <= NOW() - make_interval(secs => %s)
        """
        code = generate_verification_code(self._code_length)

        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (identity, code, self._throttle_seconds))
                conn.commit()
                # 1 if INSERT succeeded OR UPDATE WHERE matched
                issued = cursor.rowcount == 1
        except psycopg.Error as e:
            raise StorageError(f"Unable to issue verification code: {e}") from e

        return code if issued else None

    def verify(self, identity: str, code: str) -> bool:
        """
        Check a code and delete it on success.

        Args:
            identity: Canonical identity handle
            code: Code presented by the caller

        Returns:
            True if a non-expired matching code existed and was consumed
        """
        select_sql = """
            SELECT code
            FROM verification_codes
            WHERE identity = %s
              AND issued_at > NOW() - make_interval(secs => %s)
            FOR UPDATE
        """
        delete_sql = "DELETE FROM verification_codes WHERE identity = %s"

        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(select_sql, (identity, self._ttl_seconds))
                row = cursor.fetchone()

                # Always compare, even without a row
                stored_code = row[0] if row is not None else ""
                matched = secrets.compare_digest(stored_code.encode(), code.encode())

                if row is None or not matched:
                    conn.commit()
                    return False

                cursor.execute(delete_sql, (identity,))
                conn.commit()
                return True
        except psycopg.Error as e:
            raise StorageError(f"Unable to verify code: {e}") from e


class PostgresAccountRepository:
    """Implements AccountRepository protocol via psycopg3."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def bind_fingerprint(self, identity: str, domain: str, fingerprint: str) -> None:
        """Insert or replace the key fingerprint bound to an account."""
        sql = """
            INSERT INTO accounts (identity, domain, fingerprint, registered_at)
            VALUES (%s, %s, %s, NOW())
            ON CONFLICT (identity) DO UPDATE
            SET domain = EXCLUDED.domain,
                fingerprint = EXCLUDED.fingerprint,
                registered_at = NOW()
        """
        try:
            with self._pool.connection() as conn:
                conn.execute(sql, (identity, domain, fingerprint))
                conn.commit()
        except psycopg.Error as e:
            raise StorageError(f"Unable to bind fingerprint for {identity}: {e}") from e

    def is_registered(self, identity: str) -> bool:
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute("SELECT 1 FROM accounts WHERE identity = %s", (identity,))
                return cursor.fetchone() is not None
        except psycopg.Error as e:
            raise StorageError(f"Unable to read account {identity}: {e}") from e

    def get_fingerprint(self, identity: str) -> str | None:
        """Return the bound fingerprint, or None for unknown accounts."""
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute("SELECT fingerprint FROM accounts WHERE identity = %s", (identity,))
                row = cursor.fetchone()
        except psycopg.Error as e:
            raise StorageError(f"Unable to read account {identity}: {e}") from e
        return row[0] if row is not None else None


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
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
