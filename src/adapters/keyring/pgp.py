"""
PGP signing authority adapter - Implements SigningAuthority protocol.

Each served domain owns one OpenPGP secret key. Registration requests
that pass code verification get the user ids naming the verified
account certified by that key, proving membership in the network. User
ids for other identities or other domains are never certified.

Keys are loaded once at startup into an immutable SigningKeyring
(domain -> PgpSigningAuthority) that is injected into the registration
service. Unprotected keys are only read during certification and can be
used by concurrent requests; passphrase-protected keys are unlocked
under a per-key lock because PGPy unlocks keys in place.
"""

import logging
import threading
from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType

import pgpy
from pgpy.errors import PGPError

from src.domain.exceptions import SigningError
from src.domain.identity import canonical_identity, split_identity

logger = logging.getLogger(__name__)


def _normalize_fingerprint(value: str) -> str:
    return value.replace(" ", "").upper()


def _names_identity(uid: pgpy.PGPUID, identity: str) -> bool:
    try:
        local, domain = split_identity((uid.email or "").strip())
    except ValueError:
        return False
    return canonical_identity(local, domain) == identity.lower()


class PgpSigningAuthority:
    """Certifies public keys with one domain's secret key."""

    def __init__(self, domain: str, key: pgpy.PGPKey, passphrase: str | None = None) -> None:
        """
        Args:
            domain: Served domain this key signs for
            key: Secret signing key
            passphrase: Passphrase for a protected key

        Raises:
            SigningError: If the key is public or cannot be unlocked
        """
        if key.is_public:
            raise SigningError(f"Signing key for {domain} is not a secret key")
        self._domain = domain.lower()
        self._key = key
        self._passphrase = passphrase
        self._unlock_lock = threading.Lock()

        if key.is_protected:
            if passphrase is None:
                raise SigningError(f"Signing key for {domain} is protected, no passphrase given")
            try:
                with key.unlock(passphrase):
                    pass
            except PGPError as e:
                raise SigningError(f"Unable to unlock signing key for {domain}") from e

    @property
    def domain(self) -> str:
        return self._domain

    @property
    def fingerprint(self) -> str:
        """Uppercase hex fingerprint of the signing key."""
        return _normalize_fingerprint(str(self._key.fingerprint))

    def sign(self, public_key: bytes, identity: str) -> bytes:
        """
        Certify the user ids of a public key that name one account.

        User ids for any other identity are left uncertified.

        Args:
            public_key: Validated OpenPGP public key bytes
            identity: Canonical identity handle the key was validated for

        Returns:
            Binary OpenPGP public key carrying the server certifications

        Raises:
            SigningError: If the key cannot be loaded or certified, or has
                no user id for the identity
        """
        if not identity.lower().endswith("@" + self._domain):
            raise SigningError(f"{identity} does not belong to {self._domain}")

        try:
            subject, _ = pgpy.PGPKey.from_blob(public_key)
            uids = [uid for uid in subject.userids if _names_identity(uid, identity)]
        # PGPy surfaces parse problems through several exception types
        except Exception as e:
            raise SigningError(f"Unable to read key for {self._domain}: {e}") from e
        if not uids:
            raise SigningError(f"Key has no user id for {identity}")

        try:
            if self._key.is_protected:
                with self._unlock_lock, self._key.unlock(self._passphrase):
                    self._certify(uids)
            else:
                self._certify(uids)
            return bytes(subject)
        except Exception as e:
            raise SigningError(f"Unable to sign key for {self._domain}: {e}") from e

    def _certify(self, uids: list[pgpy.PGPUID]) -> None:
        for uid in uids:
            uid |= self._key.certify(uid)


class SigningKeyring:
    """
    Implements SigningAuthority protocol over several served domains.

    The domain mapping is fixed at construction.
    """

    def __init__(self, authorities: Mapping[str, PgpSigningAuthority]) -> None:
        self._authorities = MappingProxyType(
            {domain.lower(): authority for domain, authority in authorities.items()}
        )

    @property
    def domains(self) -> list[str]:
        return sorted(self._authorities)

    def authority(self, domain: str) -> PgpSigningAuthority:
        """
        Raises:
            SigningError: If no signing key is configured for the domain
        """
        try:
            return self._authorities[domain.lower()]
        except KeyError:
            raise SigningError(f"No signing key configured for domain {domain}") from None

    def sign(self, public_key: bytes, domain: str, identity: str) -> bytes:
        return self.authority(domain).sign(public_key, identity)


def load_signing_key(path: Path) -> pgpy.PGPKey:
    """
    Read a secret key file (armored or binary).

    Raises:
        SigningError: If the file is missing or unreadable
    """
    try:
        key, _ = pgpy.PGPKey.from_file(str(path))
    except FileNotFoundError as e:
        raise SigningError(f"Signing key file not found: {path}") from e
    except Exception as e:
        raise SigningError(f"Unable to load signing key {path}: {e}") from e
    return key


def load_signing_keyring(
    key_files: Mapping[str, Path],
    primary_domain: str | None = None,
    fingerprint_hint: str | None = None,
    passphrase: str | None = None,
) -> SigningKeyring:
    """
    Load one signing key per served domain.

    Args:
        key_files: Mapping of domain -> secret key file
        primary_domain: Domain whose key must match fingerprint_hint
        fingerprint_hint: Expected fingerprint of the primary domain key
        passphrase: Passphrase shared by protected keys

    Raises:
        SigningError: On unreadable keys or a fingerprint mismatch
    """
    authorities = {}
    for domain, path in key_files.items():
        authority = PgpSigningAuthority(domain, load_signing_key(Path(path)), passphrase)
        authorities[domain] = authority
        logger.info("Loaded signing key %s for %s", authority.fingerprint, domain)

    keyring = SigningKeyring(authorities)

    if fingerprint_hint and primary_domain:
        expected = _normalize_fingerprint(fingerprint_hint)
        actual = keyring.authority(primary_domain).fingerprint
        if actual != expected:
            raise SigningError(
                f"Signing key for {primary_domain} has fingerprint {actual}, expected {expected}"
            )

    return keyring
