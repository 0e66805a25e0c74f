"""
Identity key validation - OpenPGP public key parsing and identity checks.

Each step fails with its own exception so callers can tell a corrupt key
apart from a key whose identity belongs to another network:

    decode_public_key   -> MalformedKey
    parse_public_key    -> MalformedKey
    extract_identity_claim -> MissingIdentityClaim
    validate_domain     -> DomainMismatch
    validate_identity   -> DomainMismatch, ConflictingIdentityClaims
"""

import base64
import binascii
from dataclasses import dataclass

import pgpy

from .exceptions import (
    ConflictingIdentityClaims,
    DomainMismatch,
    MalformedKey,
    MissingIdentityClaim,
)
from .identity import canonical_identity, split_identity


@dataclass(frozen=True)
class KeyHandle:
    """Parsed public key together with the bytes it was read from."""

    key: pgpy.PGPKey
    data: bytes


def decode_public_key(text: str) -> bytes:
    """
    Decode the base64 public key form field.

    ASCII whitespace is ignored, so MIME-wrapped base64 is accepted.

    Raises:
        MalformedKey: If the text is not valid base64 or is empty
    """
    try:
        data = base64.b64decode("".join(text.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedKey("Public key is not valid base64") from e
    if not data:
        raise MalformedKey("Public key is empty")
    return data


def parse_public_key(data: bytes) -> KeyHandle:
    """
    Parse an OpenPGP transferable public key (binary or armored).

    Raises:
        MalformedKey: If the data is not a public key
    """
    try:
        key, _ = pgpy.PGPKey.from_blob(data)
        is_public = key.is_public
    # PGPy raises a wide range of errors on hostile input
    except Exception as e:
        raise MalformedKey(f"Unable to parse public key: {e}") from e

    if not is_public:
        raise MalformedKey("Expected a public key, got a secret key")
    return KeyHandle(key=key, data=bytes(data))


def _uid_claim(uid: pgpy.PGPUID) -> str | None:
    email = (uid.email or "").strip()
    if not email:
        return None
    try:
        split_identity(email)
    except ValueError:
        return None
    return email


def identity_claims(handle: KeyHandle) -> list[str]:
    """All email-shaped user ids of the key, primary user id first."""
    uids = sorted(handle.key.userids, key=lambda uid: not uid.is_primary)
    return [claim for claim in map(_uid_claim, uids) if claim is not None]


def extract_identity_claim(handle: KeyHandle) -> str:
    """
    Return the email-shaped user id the key is registered under.

    The primary user id wins when it carries an email.

    Raises:
        MissingIdentityClaim: If no user id carries a usable email
    """
    claims = identity_claims(handle)
    if not claims:
        raise MissingIdentityClaim("Public key has no usable user id")
    return claims[0]


def validate_domain(claim: str, expected_domain: str) -> str:
    """
    Check that an identity claim belongs to the serving domain.

    Args:
        claim: Email-shaped identifier from the key
        expected_domain: Domain the request was addressed to

    Returns:
        Canonical identity handle for the claim

    Raises:
        DomainMismatch: If the claim's domain differs (case-insensitive)
        MissingIdentityClaim: If the claim is not email-shaped
    """
    try:
        local, domain = split_identity(claim)
    except ValueError as e:
        raise MissingIdentityClaim(str(e)) from e

    if domain.lower() != expected_domain.strip().lower():
        raise DomainMismatch(f"{claim} does not belong to {expected_domain}")
    return canonical_identity(local, domain)


def validate_identity(handle: KeyHandle, expected_domain: str) -> str:
    """
    Resolve the single account a key claims on the serving domain.

    Every email-shaped user id must belong to the serving domain and name
    the same account, so the result does not depend on user id order.

    Returns:
        Canonical identity handle

    Raises:
        MissingIdentityClaim: If no user id carries a usable email
        DomainMismatch: If any user id belongs to another domain
        ConflictingIdentityClaims: If user ids name different accounts
    """
    claim = extract_identity_claim(handle)
    identities = {validate_domain(other, expected_domain) for other in identity_claims(handle)}
    if len(identities) > 1:
        raise ConflictingIdentityClaims(f"{claim} shares its key with other accounts")
    return identities.pop()


def fingerprint(handle: KeyHandle) -> bytes:
    """Raw fingerprint of the primary key."""
    return bytes.fromhex(str(handle.key.fingerprint).replace(" ", ""))


def fingerprint_hex(handle: KeyHandle) -> str:
    """Fingerprint rendered as uppercase hex, as stored in the account store."""
    return fingerprint(handle).hex().upper()
