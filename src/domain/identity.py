"""
Identity handles - Phone normalization and canonical account identifiers.

An identity handle is "<local>@<domain>". Both registration paths build
it through canonical_identity(), so a handle derived from a phone number
and one taken from a public key user id compare as plain strings.
"""

import hashlib

import phonenumbers
from phonenumbers import NumberParseException, PhoneNumberFormat

from .exceptions import InvalidPhoneNumber


def canonical_identity(local: str, domain: str) -> str:
    """Build an identity handle; both parts are lower-cased."""
    return f"{local.strip().lower()}@{domain.strip().lower()}"


def split_identity(identifier: str) -> tuple[str, str]:
    """
    Split an email-shaped identifier into (local, domain).

    Raises:
        ValueError: If the identifier is not exactly "local@domain"
    """
    local, sep, domain = identifier.strip().rpartition("@")
    if not sep or not local or not domain or "@" in local:
        raise ValueError(f"Not an email-shaped identifier: {identifier!r}")
    return local, domain


def normalize_phone(phone: str, default_region: str | None = None) -> str:
    """
    Normalize a phone number to E.164.

    Numbers without a leading "+" are read as international numbers
    unless a default region is configured, in which case they are parsed
    as national numbers of that region.

    Raises:
        InvalidPhoneNumber: If the number cannot be parsed
    """
    text = phone.strip()
    try:
        if text.startswith("+") or default_region is None:
            number = phonenumbers.parse(text if text.startswith("+") else f"+{text}", None)
        else:
            number = phonenumbers.parse(text, default_region)
    except NumberParseException as e:
        raise InvalidPhoneNumber(phone) from e

    if not phonenumbers.is_possible_number(number):
        raise InvalidPhoneNumber(phone)

    return phonenumbers.format_number(number, PhoneNumberFormat.E164)


def identity_from_phone(e164: str, domain: str) -> str:
    """Derive the identity handle for a normalized phone number."""
    digest = hashlib.sha1(e164.encode()).hexdigest()
    return canonical_identity(digest, domain)
