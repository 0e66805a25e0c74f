"""
API v1 routes.

Defines REST endpoints for the registration API.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from src.api.dependencies import get_registration_service, get_request_context, get_statistics
from src.api.models import (
    CodeSentResponse,
    ErrorResponse,
    RegisterRequest,
    SignedKeyResponse,
    StatisticsResponse,
)
from src.config.settings import Settings, get_settings
from src.domain.ports import ErrorCondition, RegistrationOutcome, RequestKind
from src.domain.registration import RegistrationRequest, RegistrationService, RequestContext
from src.domain.statistics import RegistrationStatistics

router = APIRouter(tags=["v1"])

_STATUS_CODES = {
    ErrorCondition.BAD_REQUEST: status.HTTP_400_BAD_REQUEST,
    ErrorCondition.NOT_AUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorCondition.NOT_ACCEPTABLE: status.HTTP_406_NOT_ACCEPTABLE,
    ErrorCondition.INTERNAL_SERVER_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCondition.SERVICE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@router.post(
    "/register",
    response_model=CodeSentResponse | SignedKeyResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Malformed request, phone, key or code"},
        403: {"model": ErrorResponse, "description": "Registration not allowed"},
        406: {
            "model": ErrorResponse,
            "description": "Verification code could not be delivered, or account already registered",
        },
        500: {"model": ErrorResponse, "description": "Storage or signing failure"},
        503: {"model": ErrorResponse, "description": "Too many attempts, retry later"},
    },
    summary="Register a phone number or complete registration",
    description="Submit a phone number to receive a verification code by SMS, "
    "then submit the code with an OpenPGP public key to get the key signed by the server.",
)
def register(
    request_data: RegisterRequest,
    context: RequestContext = Depends(get_request_context),
    service: RegistrationService = Depends(get_registration_service),
    settings: Settings = Depends(get_settings),
) -> CodeSentResponse | SignedKeyResponse:
    """
    Run one step of the registration protocol.

    - **phone**: request a verification code
    - **code** + **publickey**: complete registration
    """
    result = service.handle(
        RegistrationRequest(
            kind=RequestKind.SET,
            fields=request_data.model_dump(),
            context=context,
        )
    )

    if result.outcome == RegistrationOutcome.CODE_SENT:
        return CodeSentResponse(**result.payload)
    if result.outcome == RegistrationOutcome.REGISTERED:
        return SignedKeyResponse(**result.payload)

    headers = None
    if result.condition == ErrorCondition.SERVICE_UNAVAILABLE:
        headers = {"Retry-After": str(settings.throttle_seconds)}
    raise HTTPException(
        status_code=_STATUS_CODES[result.condition],
        detail=result.message,
        headers=headers,
    )


@router.get(
    "/statistics",
    response_model=StatisticsResponse,
    summary="Registration counters",
)
def statistics(
    stats: RegistrationStatistics = Depends(get_statistics),
) -> StatisticsResponse:
    """Counters since process start, for monitoring."""
    return StatisticsResponse(**stats.snapshot())
