"""
Unit tests for the PGP signing authority and keyring.

Tests verify:
- Certification of the registered identity's user ids by the domain key
- Unknown domains and unusable keys raise SigningError
- Startup loading from key files with fingerprint checking
"""

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pgpy
import pytest

from src.adapters.keyring.pgp import (
    PgpSigningAuthority,
    SigningKeyring,
    load_signing_key,
    load_signing_keyring,
)
from src.domain.exceptions import SigningError
from tests.helpers import DOMAIN, PHONE_IDENTITY, make_multi_uid_key


class TestPgpSigningAuthority:
    """Tests for certification."""

    def test_signed_key_certified_by_server(
        self, keyring: SigningKeyring, server_key: pgpy.PGPKey, phone_key: pgpy.PGPKey
    ) -> None:
        signed_bytes = keyring.sign(bytes(phone_key.pubkey), DOMAIN, PHONE_IDENTITY)
        signed, _ = pgpy.PGPKey.from_blob(signed_bytes)

        assert signed.is_public
        assert signed.fingerprint == phone_key.fingerprint
        for uid in signed.userids:
            assert server_key.fingerprint.keyid in uid.signers

    def test_input_key_not_modified(
        self, keyring: SigningKeyring, phone_key: pgpy.PGPKey
    ) -> None:
        original = bytes(phone_key.pubkey)
        keyring.sign(original, DOMAIN, PHONE_IDENTITY)
        assert bytes(phone_key.pubkey) == original

    def test_fingerprint_uppercase_hex(self, server_key: pgpy.PGPKey) -> None:
        authority = PgpSigningAuthority(DOMAIN, server_key)
        assert authority.fingerprint == str(server_key.fingerprint).replace(" ", "").upper()

    def test_public_key_cannot_sign(self, server_key: pgpy.PGPKey) -> None:
        with pytest.raises(SigningError):
            PgpSigningAuthority(DOMAIN, server_key.pubkey)

    def test_garbage_input_is_signing_error(self, keyring: SigningKeyring) -> None:
        with pytest.raises(SigningError):
            keyring.sign(b"\x00\x01\x02garbage\xff", DOMAIN, PHONE_IDENTITY)

    @pytest.mark.parametrize(
        "emails",
        [
            (PHONE_IDENTITY, "victim@other.org"),
            ("victim@other.org", PHONE_IDENTITY),
        ],
    )
    def test_only_registered_identity_certified(
        self, keyring: SigningKeyring, server_key: pgpy.PGPKey, emails: tuple[str, str]
    ) -> None:
        key = make_multi_uid_key(*emails)

        signed, _ = pgpy.PGPKey.from_blob(keyring.sign(bytes(key.pubkey), DOMAIN, PHONE_IDENTITY))

        certified = [
            uid.email for uid in signed.userids if server_key.fingerprint.keyid in uid.signers
        ]
        assert certified == [PHONE_IDENTITY]

    def test_identity_matched_case_insensitively(
        self, keyring: SigningKeyring, server_key: pgpy.PGPKey
    ) -> None:
        key = make_multi_uid_key(PHONE_IDENTITY.upper())

        signed, _ = pgpy.PGPKey.from_blob(keyring.sign(bytes(key.pubkey), DOMAIN, PHONE_IDENTITY))

        assert server_key.fingerprint.keyid in signed.userids[0].signers

    def test_key_without_identity_user_id(
        self, keyring: SigningKeyring, key_factory: Callable[..., pgpy.PGPKey]
    ) -> None:
        key = key_factory("Alice", f"alice@{DOMAIN}")

        with pytest.raises(SigningError, match="no user id"):
            keyring.sign(bytes(key.pubkey), DOMAIN, PHONE_IDENTITY)

    def test_identity_on_other_domain_refused(
        self, server_key: pgpy.PGPKey, key_factory: Callable[..., pgpy.PGPKey]
    ) -> None:
        authority = PgpSigningAuthority(DOMAIN, server_key)
        key = key_factory("Mallory", "mallory@other.org")

        with pytest.raises(SigningError, match="does not belong"):
            authority.sign(bytes(key.pubkey), "mallory@other.org")

    def test_concurrent_signing(
        self, keyring: SigningKeyring, key_factory: Callable[..., pgpy.PGPKey]
    ) -> None:
        identities = [f"user{i}@{DOMAIN}" for i in range(3)]
        keys = [key_factory(f"User {i}", identity) for i, identity in enumerate(identities)]

        with ThreadPoolExecutor(max_workers=6) as executor:
            futures = [
                executor.submit(keyring.sign, bytes(key.pubkey), DOMAIN, identity)
                for key, identity in list(zip(keys, identities)) * 2
            ]
            results = [f.result() for f in futures]

        assert len(results) == 6
        for data in results:
            signed, _ = pgpy.PGPKey.from_blob(data)
            assert signed.userids[0].signers


class TestSigningKeyring:
    """Tests for the domain mapping."""

    def test_domain_lookup_case_insensitive(self, keyring: SigningKeyring) -> None:
        assert keyring.authority(DOMAIN.upper()).domain == DOMAIN

    def test_unknown_domain(self, keyring: SigningKeyring, phone_key: pgpy.PGPKey) -> None:
        with pytest.raises(SigningError, match="other.org"):
            keyring.sign(bytes(phone_key.pubkey), "other.org", "someone@other.org")

    def test_domains_listed(self, keyring: SigningKeyring) -> None:
        assert keyring.domains == [DOMAIN]


class TestLoadSigningKeyring:
    """Tests for startup loading."""

    @pytest.fixture
    def key_file(self, tmp_path: Path, server_key: pgpy.PGPKey) -> Path:
        path = tmp_path / "server.asc"
        path.write_text(str(server_key))
        return path

    def test_load_armored_key(self, key_file: Path, server_key: pgpy.PGPKey) -> None:
        key = load_signing_key(key_file)
        assert key.fingerprint == server_key.fingerprint
        assert not key.is_public

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SigningError, match="not found"):
            load_signing_key(tmp_path / "missing.asc")

    def test_load_keyring(self, key_file: Path) -> None:
        keyring = load_signing_keyring({DOMAIN: key_file}, primary_domain=DOMAIN)
        assert keyring.domains == [DOMAIN]

    def test_fingerprint_hint_matches(self, key_file: Path, server_key: pgpy.PGPKey) -> None:
        hint = str(server_key.fingerprint).lower()
        keyring = load_signing_keyring(
            {DOMAIN: key_file}, primary_domain=DOMAIN, fingerprint_hint=hint
        )
        assert keyring.authority(DOMAIN).fingerprint == hint.replace(" ", "").upper()

    def test_fingerprint_hint_mismatch(self, key_file: Path) -> None:
        with pytest.raises(SigningError, match="expected"):
            load_signing_keyring(
                {DOMAIN: key_file}, primary_domain=DOMAIN, fingerprint_hint="00" * 20
            )

    def test_empty_configuration(self) -> None:
        keyring = load_signing_keyring({})
        assert keyring.domains == []
