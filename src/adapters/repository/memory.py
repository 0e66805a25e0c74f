"""
In-memory repository adapters - Single-process VerificationStore and AccountRepository.

Same semantics as the PostgreSQL adapters, with atomicity provided by a
process-local lock. Suitable for development and tests only: records do
not survive a restart and are not shared between processes.
"""

import secrets
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from src.domain.codes import DEFAULT_CODE_LENGTH, generate_verification_code


@dataclass(frozen=True)
class VerificationRecord:
    """Outstanding code for one identity."""

    identity: str
    code: str
    issued_at: float


class InMemoryVerificationStore:
    """
    Implements VerificationStore protocol with a dict and a lock.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        throttle_seconds: int,
        ttl_seconds: int,
        code_length: int = DEFAULT_CODE_LENGTH,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._throttle_seconds = throttle_seconds
        self._ttl_seconds = ttl_seconds
        self._code_length = code_length
        self._clock = clock
        self._records: dict[str, VerificationRecord] = {}
        self._lock = threading.Lock()

    def issue(self, identity: str) -> str | None:
        with self._lock:
            now = self._clock()
            current = self._records.get(identity)
            if current is not None and now - current.issued_at < self._throttle_seconds:
                return None

            code = generate_verification_code(self._code_length)
            self._records[identity] = VerificationRecord(identity, code, now)
            return code

    def verify(self, identity: str, code: str) -> bool:
        with self._lock:
            record = self._records.get(identity)
            if record is None:
                return False
            if self._clock() - record.issued_at >= self._ttl_seconds:
                return False
            if not secrets.compare_digest(record.code.encode(), code.encode()):
                return False
            del self._records[identity]
            return True

    def get(self, identity: str) -> VerificationRecord | None:
        """Return the outstanding record for an identity, if any."""
        with self._lock:
            return self._records.get(identity)


class InMemoryAccountRepository:
    """Implements AccountRepository protocol with a dict."""

    def __init__(self) -> None:
        self._fingerprints: dict[str, tuple[str, str]] = {}
        self._lock = threading.Lock()

    def bind_fingerprint(self, identity: str, domain: str, fingerprint: str) -> None:
        with self._lock:
            self._fingerprints[identity] = (domain, fingerprint)

    def is_registered(self, identity: str) -> bool:
        with self._lock:
            return identity in self._fingerprints

    def get_fingerprint(self, identity: str) -> str | None:
        with self._lock:
            entry = self._fingerprints.get(identity)
        return entry[1] if entry is not None else None
