"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from enum import Enum
from typing import Protocol


class RequestKind(str, Enum):
    """Kind of an incoming registration request."""

    SET = "set"
    GET = "get"
    OTHER = "other"


class ErrorCondition(str, Enum):
    """Outward-facing error classes returned to the transport layer."""

    BAD_REQUEST = "bad-request"
    NOT_AUTHORIZED = "not-authorized"
    INTERNAL_SERVER_ERROR = "internal-server-error"
    SERVICE_UNAVAILABLE = "service-unavailable"
    NOT_ACCEPTABLE = "not-acceptable"


class RegistrationOutcome(str, Enum):
    """
    Terminal outcome of a single registration request.

    Success outcomes:
    - CODE_SENT: verification code issued and delivered
    - REGISTERED: code accepted, public key signed and bound

    Every other value is a failure and carries an ErrorCondition.
    """

    CODE_SENT = "code_sent"
    REGISTERED = "registered"
    MALFORMED_REQUEST = "malformed_request"
    BAD_PHONE_NUMBER = "bad_phone_number"
    INVALID_PUBLIC_KEY = "invalid_public_key"
    INVALID_CODE = "invalid_code"
    THROTTLED = "throttled"
    ALREADY_REGISTERED = "already_registered"
    DELIVERY_FAILED = "delivery_failed"
    NOT_AUTHORIZED = "not_authorized"
    INTERNAL_ERROR = "internal_error"


class VerificationStore(Protocol):
    """Port interface for verification code persistence."""

    def issue(self, identity: str) -> str | None:
        """
        Atomically issue a fresh verification code for an identity.

        Any previous code for the identity is replaced. Issuance is refused
        while the previous code is still inside the throttle window.

        Args:
            identity: Canonical identity handle

        Returns:
            The new code, or None if issuance is throttled

        Raises:
            StorageError: If the store cannot be reached
        """
        ...

    def verify(self, identity: str, code: str) -> bool:
        """
        Check a code and invalidate it on success.

        Check and invalidation are atomic: two concurrent calls with the
        same correct code cannot both return True.

        Args:
            identity: Canonical identity handle
            code: Code presented by the caller

        Returns:
            True if a non-expired record with exactly this code existed

        Raises:
            StorageError: If the store cannot be reached
        """
        ...


class PhoneVerificationChannel(Protocol):
    """Port interface for out-of-band code delivery."""

    def send_code(self, phone: str, code: str) -> None:
        """
        Deliver a verification code to a phone number.

        Args:
            phone: E.164 phone number
            code: Verification code

        Raises:
            DeliveryFailure: On any transport problem
        """
        ...

    def sender_identity(self) -> str:
        """Identity the code will appear to come from."""
        ...

    def instructions(self) -> str:
        """Human instructions relayed to the client."""
        ...


class SigningAuthority(Protocol):
    """Port interface for network key co-signing."""

    def sign(self, public_key: bytes, domain: str, identity: str) -> bytes:
        """
        Certify a validated public key with the domain's signing key.

        Only user ids naming the given identity are certified.

        Raises:
            SigningError: If no usable signing key exists for the domain
        """
        ...


class AccountRepository(Protocol):
    """Port interface for the durable account store."""

    def bind_fingerprint(self, identity: str, domain: str, fingerprint: str) -> None:
        """
        Record the key bound to an account.

        Args:
            identity: Canonical identity handle
            domain: Serving domain
            fingerprint: Uppercase hex key fingerprint

        Raises:
            StorageError: If the binding cannot be written
        """
        ...

    def is_registered(self, identity: str) -> bool:
        """Return True if the identity already has a bound key."""
        ...
