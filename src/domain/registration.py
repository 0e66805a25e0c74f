"""
Registration domain service - Two-phase phone/key registration protocol.

This module contains the core business logic for binding a phone number
to an OpenPGP identity on the network.

Request Flow (one request, no state kept between requests)
==========================================================

Phone request {phone}:
    normalize -> identity = sha1(e164)@domain -> store.issue
        -> channel.send_code -> CODE_SENT {instructions, sender_identity}

Code request {code, publickey}:
    decode -> parse -> resolve user ids to one identity on domain -> store.verify
        -> signer.sign -> accounts.bind_fingerprint
        -> REGISTERED {form_type, public_key}

Failures are returned as RegistrationResult values carrying one
ErrorCondition; no exception raised by a port escapes handle().

All persistent state lives in the verification store and the account
repository. Atomicity of issue/verify is the store's responsibility.
"""

import base64
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from .exceptions import (
    ConflictingIdentityClaims,
    DeliveryFailure,
    DomainMismatch,
    InvalidPhoneNumber,
    MalformedKey,
    MissingIdentityClaim,
    NotAuthorized,
    SigningError,
    StorageError,
)
from .identity import identity_from_phone, normalize_phone
from .keys import (
    decode_public_key,
    fingerprint_hex,
    parse_public_key,
    validate_identity,
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
from .statistics import RegistrationStatistics

logger = logging.getLogger(__name__)

CODE_FORM_TYPE = "http://kontalk.org/protocol/register#code"

FIELD_PHONE = "phone"
FIELD_CODE = "code"
FIELD_PUBLIC_KEY = "publickey"

ERROR_MALFORMED_REQUEST = (
    "Please provide either a phone number or a public key and a verification code."
)
ERROR_AMBIGUOUS_REQUEST = (
    "Please provide either a phone number or a public key and a verification code, not both."
)
ERROR_WRONG_TYPE = "Message type is incorrect."
ERROR_REGISTRATION_DISABLED = "Registration is not allowed for this domain."
ERROR_NOT_AUTHORIZED = "You are not authorized to change registration settings."
ERROR_BAD_PHONE = "Bad phone number."
ERROR_THROTTLED = "Too many attempts."
ERROR_ALREADY_REGISTERED = "Account already registered."
ERROR_DELIVERY = "Unable to send SMS."
ERROR_INVALID_KEY = "Invalid public key."
ERROR_KEY_NO_USER_ID = "Invalid public key: no usable user id."
ERROR_KEY_WRONG_DOMAIN = "Invalid public key: user id does not belong to this domain."
ERROR_KEY_CONFLICTING_USER_IDS = "Invalid public key: user ids name different accounts."
ERROR_INVALID_CODE = "Invalid verification code."
ERROR_DATABASE = "Database access problem, please contact administrator."
ERROR_SIGNING = "Internal PGP error. Please contact administrator."

_CONDITIONS = {
    RegistrationOutcome.MALFORMED_REQUEST: ErrorCondition.BAD_REQUEST,
    RegistrationOutcome.BAD_PHONE_NUMBER: ErrorCondition.BAD_REQUEST,
    RegistrationOutcome.INVALID_PUBLIC_KEY: ErrorCondition.BAD_REQUEST,
    RegistrationOutcome.INVALID_CODE: ErrorCondition.BAD_REQUEST,
    RegistrationOutcome.THROTTLED: ErrorCondition.SERVICE_UNAVAILABLE,
    RegistrationOutcome.ALREADY_REGISTERED: ErrorCondition.NOT_ACCEPTABLE,
    RegistrationOutcome.DELIVERY_FAILED: ErrorCondition.NOT_ACCEPTABLE,
    RegistrationOutcome.NOT_AUTHORIZED: ErrorCondition.NOT_AUTHORIZED,
    RegistrationOutcome.INTERNAL_ERROR: ErrorCondition.INTERNAL_SERVER_ERROR,
}


@dataclass(frozen=True)
class RequestContext:
    """
    Session facts supplied by the transport layer.

    Attributes:
        domain: Serving domain the request was addressed to
        registration_enabled: Whether the domain accepts registrations
        authenticated: Whether the session is already authenticated
        principal: Authenticated identity, if any
        target: Identity the request acts upon, if addressed to one
    """

    domain: str
    registration_enabled: bool = True
    authenticated: bool = False
    principal: str | None = None
    target: str | None = None


@dataclass(frozen=True)
class RegistrationRequest:
    """Incoming request: kind, named form fields and session context."""

    kind: RequestKind
    fields: Mapping[str, str | None]
    context: RequestContext

    def field(self, name: str) -> str | None:
        """Return a form field, treating empty values as absent."""
        value = self.fields.get(name)
        return value if value else None


@dataclass(frozen=True)
class RegistrationResult:
    """Terminal result of one request."""

    outcome: RegistrationOutcome
    payload: dict[str, str] | None = None
    condition: ErrorCondition | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.condition is None

    @classmethod
    def failure(cls, outcome: RegistrationOutcome, message: str) -> "RegistrationResult":
        return cls(outcome=outcome, condition=_CONDITIONS[outcome], message=message)


@dataclass
class RegistrationService:
    """
    Domain service orchestrating phone and key registration.

    Drives the verification store, delivery channel, key validation and
    signing authority, and maps every failure to a RegistrationResult.
    """

    store: VerificationStore
    channel: PhoneVerificationChannel
    signer: SigningAuthority
    accounts: AccountRepository
    statistics: RegistrationStatistics = field(default_factory=RegistrationStatistics)
    default_region: str | None = None
    reject_ambiguous_requests: bool = False
    allow_reregistration: bool = True

    def handle(self, request: RegistrationRequest) -> RegistrationResult:
        """
        Process one registration request.

        Args:
            request: Request kind, form fields and session context

        Returns:
            RegistrationResult with a success payload or an error condition
        """
        result = self._dispatch(request)
        if result.outcome == RegistrationOutcome.REGISTERED:
            self.statistics.record_completed()
        elif not result.ok:
            self.statistics.record_rejected()
        return result

    def _dispatch(self, request: RegistrationRequest) -> RegistrationResult:
        try:
            self._authorize(request.context)
        except NotAuthorized as e:
            logger.info("Rejected registration for %s: %s", request.context.domain, e)
            return RegistrationResult.failure(RegistrationOutcome.NOT_AUTHORIZED, str(e))

        if request.kind != RequestKind.SET:
            return RegistrationResult.failure(
                RegistrationOutcome.MALFORMED_REQUEST, ERROR_WRONG_TYPE
            )

        phone = request.field(FIELD_PHONE)
        code = request.field(FIELD_CODE)
        public_key = request.field(FIELD_PUBLIC_KEY)
        has_key = code is not None and public_key is not None

        if phone is not None:
            if self.reject_ambiguous_requests and (code is not None or public_key is not None):
                return RegistrationResult.failure(
                    RegistrationOutcome.MALFORMED_REQUEST, ERROR_AMBIGUOUS_REQUEST
                )
            return self._register_phone(phone, request.context.domain)

        if has_key:
            return self._register_key(code, public_key, request.context.domain)

        return RegistrationResult.failure(
            RegistrationOutcome.MALFORMED_REQUEST, ERROR_MALFORMED_REQUEST
        )

    def _authorize(self, context: RequestContext) -> None:
        """
        Apply session rules.

        Anonymous sessions need registration enabled on the domain.
        Authenticated sessions may only act on themselves or their domain.
        """
        if not context.authenticated:
            if not context.registration_enabled:
                raise NotAuthorized(ERROR_REGISTRATION_DISABLED)
            return

        if context.target is None:
            return
        allowed = {context.domain.lower()}
        if context.principal:
            allowed.add(context.principal.lower())
        if context.target.lower() not in allowed:
            raise NotAuthorized(ERROR_NOT_AUTHORIZED)

    def _register_phone(self, phone_input: str, domain: str) -> RegistrationResult:
        self.statistics.record_attempt()

        try:
            phone = normalize_phone(phone_input, self.default_region)
        except InvalidPhoneNumber:
            logger.info("Invalid phone number: %s", phone_input)
            return RegistrationResult.failure(
                RegistrationOutcome.BAD_PHONE_NUMBER, ERROR_BAD_PHONE
            )

        logger.debug("Registering phone number: %s", phone)
        identity = identity_from_phone(phone, domain)

        try:
            if not self.allow_reregistration and self.accounts.is_registered(identity):
                logger.info("Refusing new code for registered account: %s", identity)
                return RegistrationResult.failure(
                    RegistrationOutcome.ALREADY_REGISTERED, ERROR_ALREADY_REGISTERED
                )
            code = self.store.issue(identity)
        except StorageError as e:
            logger.error("Database problem: %s", e)
            return RegistrationResult.failure(RegistrationOutcome.INTERNAL_ERROR, ERROR_DATABASE)

        if code is None:
            logger.info("Throttling registration for: %s", identity)
            return RegistrationResult.failure(RegistrationOutcome.THROTTLED, ERROR_THROTTLED)

        # The issued code stays in the store if delivery fails
        try:
            self.channel.send_code(phone, code)
        except DeliveryFailure as e:
            logger.warning("Failed to send verification code for %s: %s", identity, e)
            return RegistrationResult.failure(RegistrationOutcome.DELIVERY_FAILED, ERROR_DELIVERY)

        return RegistrationResult(
            outcome=RegistrationOutcome.CODE_SENT,
            payload={
                "instructions": self.channel.instructions(),
                "sender_identity": self.channel.sender_identity(),
            },
        )

    def _register_key(self, code: str, public_key: str, domain: str) -> RegistrationResult:
        try:
            handle = parse_public_key(decode_public_key(public_key))
            identity = validate_identity(handle, domain)
        except MalformedKey as e:
            logger.info("Invalid public key: %s", e)
            return RegistrationResult.failure(
                RegistrationOutcome.INVALID_PUBLIC_KEY, ERROR_INVALID_KEY
            )
        except MissingIdentityClaim as e:
            logger.info("Public key without user id: %s", e)
            return RegistrationResult.failure(
                RegistrationOutcome.INVALID_PUBLIC_KEY, ERROR_KEY_NO_USER_ID
            )
        except DomainMismatch as e:
            logger.info("Public key for foreign domain: %s", e)
            return RegistrationResult.failure(
                RegistrationOutcome.INVALID_PUBLIC_KEY, ERROR_KEY_WRONG_DOMAIN
            )
        except ConflictingIdentityClaims as e:
            logger.info("Public key for several accounts: %s", e)
            return RegistrationResult.failure(
                RegistrationOutcome.INVALID_PUBLIC_KEY, ERROR_KEY_CONFLICTING_USER_IDS
            )

        key_fingerprint = fingerprint_hex(handle)
        try:
            if not self.store.verify(identity, code):
                logger.info("Invalid verification code for: %s", identity)
                return RegistrationResult.failure(
                    RegistrationOutcome.INVALID_CODE, ERROR_INVALID_CODE
                )
            signed_key = self.signer.sign(handle.data, domain, identity)
            self.accounts.bind_fingerprint(identity, domain.lower(), key_fingerprint)
        except StorageError as e:
            logger.error("Database problem: %s", e)
            return RegistrationResult.failure(RegistrationOutcome.INTERNAL_ERROR, ERROR_DATABASE)
        except SigningError as e:
            logger.error("Unable to sign key for %s on %s: %s", identity, domain, e)
            return RegistrationResult.failure(RegistrationOutcome.INTERNAL_ERROR, ERROR_SIGNING)

        logger.info("Registered %s with key %s", identity, key_fingerprint)
        return RegistrationResult(
            outcome=RegistrationOutcome.REGISTERED,
            payload={
                "form_type": CODE_FORM_TYPE,
                "public_key": base64.b64encode(signed_key).decode(),
            },
        )
