"""
Domain layer - Pure business logic with zero framework imports.

This package contains the core logic of the phone/key registration
protocol. It defines its own port interfaces for infrastructure
abstraction, ensuring true hexagonal architecture decoupling.
"""

from .exceptions import (
    ConflictingIdentityClaims,
    DeliveryFailure,
    DomainMismatch,
    InvalidPhoneNumber,
    KeyValidationError,
    MalformedKey,
    MissingIdentityClaim,
    NotAuthorized,
    RegistrationError,
    SigningError,
    StorageError,
)
from .ports import (
    AccountRepository,
    ErrorCondition,
    PhoneVerificationChannel,
    RegistrationOutcome,
    RequestKind,
    SigningAuthority,
    VerificationStore,
)
from .registration import (
    RegistrationRequest,
    RegistrationResult,
    RegistrationService,
    RequestContext,
)
from .statistics import RegistrationStatistics

__all__ = [
    "AccountRepository",
    "ConflictingIdentityClaims",
    "DeliveryFailure",
    "DomainMismatch",
    "ErrorCondition",
    "InvalidPhoneNumber",
    "KeyValidationError",
    "MalformedKey",
    "MissingIdentityClaim",
    "NotAuthorized",
    "PhoneVerificationChannel",
    "RegistrationError",
    "RegistrationOutcome",
    "RegistrationRequest",
    "RegistrationResult",
    "RegistrationService",
    "RegistrationStatistics",
    "RequestContext",
    "RequestKind",
    "SigningAuthority",
    "SigningError",
    "StorageError",
    "VerificationStore",
]
