"""Process-wide registration counters."""

import threading
from dataclasses import dataclass, field


@dataclass
class RegistrationStatistics:
    """
    Monotonic counters read by monitoring.

    Increments are serialized by a lock so concurrent requests never lose
    updates; readers get a snapshot that may be slightly stale.
    """

    attempts: int = 0
    completed: int = 0
    rejected: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_attempt(self) -> None:
        with self._lock:
            self.attempts += 1

    def record_completed(self) -> None:
        with self._lock:
            self.completed += 1

    def record_rejected(self) -> None:
        with self._lock:
            self.rejected += 1

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return {
                "registration_attempts": self.attempts,
                "registered_users": self.completed,
                "invalid_registrations": self.rejected,
            }
