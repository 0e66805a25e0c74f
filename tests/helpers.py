"""Test helpers shared across test packages."""

import base64
import hashlib

import pgpy
from pgpy.constants import (
    CompressionAlgorithm,
    HashAlgorithm,
    KeyFlags,
    PubKeyAlgorithm,
    SymmetricKeyAlgorithm,
)

DOMAIN = "example.net"
PHONE = "+16505550100"
PHONE_IDENTITY = f"{hashlib.sha1(PHONE.encode()).hexdigest()}@{DOMAIN}"


def make_key(name: str, email: str = "") -> pgpy.PGPKey:
    """Generate an RSA secret key with a single primary user id."""
    key = pgpy.PGPKey.new(PubKeyAlgorithm.RSAEncryptOrSign, 2048)
    add_user_id(key, name, email, primary=True)
    return key


def add_user_id(key: pgpy.PGPKey, name: str, email: str = "", primary: bool = False) -> None:
    """Self-sign and attach another user id."""
    uid = pgpy.PGPUID.new(name, email=email)
    key.add_uid(
        uid,
        usage={KeyFlags.Sign, KeyFlags.Certify},
        hashes=[HashAlgorithm.SHA256],
        ciphers=[SymmetricKeyAlgorithm.AES256],
        compression=[CompressionAlgorithm.Uncompressed],
        primary=primary,
    )


def make_multi_uid_key(*emails: str) -> pgpy.PGPKey:
    """Key with one non-primary user id per email, in the given order."""
    key = pgpy.PGPKey.new(PubKeyAlgorithm.RSAEncryptOrSign, 2048)
    for i, email in enumerate(emails):
        add_user_id(key, f"User {i}", email)
    return key


def encode_key(key: pgpy.PGPKey) -> str:
    """Base64 form field for a key's public part."""
    return base64.b64encode(bytes(key.pubkey)).decode()


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
