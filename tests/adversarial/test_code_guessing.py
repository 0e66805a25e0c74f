"""
Adversarial tests for verification code guessing.

Verifies that guessing codes gains an attacker nothing:
- Near misses (prefixes, padding, other lengths) never verify
- Failed guesses do not consume or reveal the outstanding code
- A reissued code invalidates the previous one
- Code comparison is constant-time
"""

from unittest.mock import patch

import pytest

from src.adapters.repository import memory
from src.adapters.repository.memory import InMemoryVerificationStore
from tests.helpers import PHONE_IDENTITY, FakeClock

pytestmark = pytest.mark.adversarial


class TestCodeGuessing:
    """Guessing attacks against the in-memory store."""

    @pytest.mark.parametrize(
        "mutate",
        [
            lambda c: c[:-1],
            lambda c: c + "0",
            lambda c: " " + c,
            lambda c: c + "\n",
            lambda c: "",
            lambda c: c[::-1] if c != c[::-1] else c + "1",
        ],
    )
    def test_near_misses_rejected(
        self, memory_store: InMemoryVerificationStore, mutate
    ) -> None:
        code = memory_store.issue(PHONE_IDENTITY)

        assert memory_store.verify(PHONE_IDENTITY, mutate(code)) is False
        assert memory_store.verify(PHONE_IDENTITY, code) is True

    def test_many_failed_guesses_keep_code(
        self, memory_store: InMemoryVerificationStore
    ) -> None:
        code = memory_store.issue(PHONE_IDENTITY)
        guesses = [f"{n:06d}" for n in range(200) if f"{n:06d}" != code]

        assert not any(memory_store.verify(PHONE_IDENTITY, g) for g in guesses)
        assert memory_store.verify(PHONE_IDENTITY, code) is True

    def test_reissue_invalidates_previous_code(
        self, memory_store: InMemoryVerificationStore, clock: FakeClock
    ) -> None:
        first = memory_store.issue(PHONE_IDENTITY)
        clock.advance(61)
        second = memory_store.issue(PHONE_IDENTITY)

        if first != second:
            assert memory_store.verify(PHONE_IDENTITY, first) is False
        assert memory_store.verify(PHONE_IDENTITY, second) is True

    def test_comparison_is_constant_time(
        self, memory_store: InMemoryVerificationStore
    ) -> None:
        code = memory_store.issue(PHONE_IDENTITY)
        wrong = "000000" if code != "000000" else "111111"

        with patch.object(
            memory.secrets, "compare_digest", wraps=memory.secrets.compare_digest
        ) as compare:
            memory_store.verify(PHONE_IDENTITY, wrong)
            memory_store.verify(PHONE_IDENTITY, code)

        assert compare.call_count == 2
