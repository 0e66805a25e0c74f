"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- OpenPGP server and user keys (generated once per session)
- Signing keyring for the test domain
- In-memory stores with a controllable clock
- A PostgreSQL pool for integration and adversarial tests
"""

from collections.abc import Callable, Generator

import pgpy
import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from src.adapters.keyring.pgp import PgpSigningAuthority, SigningKeyring
from src.adapters.repository.memory import InMemoryAccountRepository, InMemoryVerificationStore
from src.adapters.repository.postgres import run_migrations
from src.config.settings import get_settings
from tests.helpers import DOMAIN, PHONE_IDENTITY, FakeClock, make_key


@pytest.fixture(scope="session")
def server_key() -> pgpy.PGPKey:
    """Network signing key for DOMAIN."""
    return make_key("Example Network", f"network@{DOMAIN}")


@pytest.fixture(scope="session")
def key_factory() -> Callable[..., pgpy.PGPKey]:
    """Cached key generator keyed by (name, email)."""
    cache: dict[tuple[str, str], pgpy.PGPKey] = {}

    def factory(name: str = "Test User", email: str = "") -> pgpy.PGPKey:
        if (name, email) not in cache:
            cache[(name, email)] = make_key(name, email)
        return cache[(name, email)]

    return factory


@pytest.fixture(scope="session")
def phone_key(key_factory: Callable[..., pgpy.PGPKey]) -> pgpy.PGPKey:
    """User key whose user id is the identity derived from PHONE."""
    return key_factory("Phone User", PHONE_IDENTITY)


@pytest.fixture
def keyring(server_key: pgpy.PGPKey) -> SigningKeyring:
    """Keyring serving DOMAIN with the session server key."""
    return SigningKeyring({DOMAIN: PgpSigningAuthority(DOMAIN, server_key)})


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store(clock: FakeClock) -> InMemoryVerificationStore:
    """In-memory store: 60s throttle, 600s code lifetime."""
    return InMemoryVerificationStore(throttle_seconds=60, ttl_seconds=600, clock=clock)


@pytest.fixture
def accounts() -> InMemoryAccountRepository:
    return InMemoryAccountRepository()


@pytest.fixture(scope="session")
def pg_pool() -> Generator[ConnectionPool, None, None]:
    """
    Connection pool against DATABASE_URL with migrations applied.

    Tests using it are skipped when PostgreSQL is unreachable.
    """
    settings = get_settings()
    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=10, open=False)
    try:
        pool.open(wait=True, timeout=5)
    except PoolTimeout:
        pool.close()
        pytest.skip(f"PostgreSQL not reachable at {settings.database_url}")
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_database(pg_pool: ConnectionPool) -> Generator[ConnectionPool, None, None]:
    """Empty the verification and account tables before a test."""
    with pg_pool.connection() as conn:
        conn.execute("DELETE FROM verification_codes")
        conn.execute("DELETE FROM accounts")
        conn.commit()
    yield pg_pool
