"""
Domain exceptions - Semantic error types for registration.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
Expected outcomes (wrong code, throttled issuance) are plain return
values; exceptions are reserved for invalid input and hard failures.
"""


class RegistrationError(Exception):
    """Base class for registration domain errors."""

    pass


class InvalidPhoneNumber(RegistrationError):
    """Phone number could not be parsed into E.164 form."""

    pass


class KeyValidationError(RegistrationError):
    """Base class for public key validation failures."""

    pass


class MalformedKey(KeyValidationError):
    """Key data does not decode as an OpenPGP public key."""

    pass


class MissingIdentityClaim(KeyValidationError):
    """Key carries no usable email-shaped user id."""

    pass


class DomainMismatch(KeyValidationError):
    """User id domain is not the serving domain."""

    pass


class ConflictingIdentityClaims(KeyValidationError):
    """User ids on one key name different accounts."""

    pass


class DeliveryFailure(RegistrationError):
    """Verification code could not be delivered to the phone."""

    pass


class StorageError(RegistrationError):
    """Durable store unreachable or inconsistent."""

    pass


class SigningError(RegistrationError):
    """Server signing key missing or unusable."""

    pass


class NotAuthorized(RegistrationError):
    """Caller may not perform registration actions for this identity."""

    pass
