"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from fastapi import Depends, Request
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresAccountRepository, PostgresVerificationStore
from src.config.settings import Settings, get_settings
from src.domain.ports import PhoneVerificationChannel, SigningAuthority
from src.domain.registration import RegistrationService, RequestContext
from src.domain.statistics import RegistrationStatistics


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_verification_store(
    request: Request, settings: Settings = Depends(get_settings)
) -> PostgresVerificationStore:
    """Create verification store with connection pool from app state."""
    return PostgresVerificationStore(
        get_pool(request),
        throttle_seconds=settings.throttle_seconds,
        ttl_seconds=settings.code_ttl_seconds,
        code_length=settings.code_length,
    )


def get_account_repository(request: Request) -> PostgresAccountRepository:
    """Create account repository with connection pool from app state."""
    return PostgresAccountRepository(get_pool(request))


def get_verification_channel(request: Request) -> PhoneVerificationChannel:
    """Channel resolved once at startup."""
    return request.app.state.verification_channel


def get_signing_authority(request: Request) -> SigningAuthority:
    """Keyring loaded once at startup."""
    return request.app.state.keyring


def get_statistics(request: Request) -> RegistrationStatistics:
    """Process-wide registration counters."""
    return request.app.state.statistics


def get_registration_service(
    request: Request, settings: Settings = Depends(get_settings)
) -> RegistrationService:
    """
    Create registration service with injected dependencies.

    Wires together the stores, channel, keyring and counters.
    """
    return RegistrationService(
        store=get_verification_store(request, settings),
        channel=get_verification_channel(request),
        signer=get_signing_authority(request),
        accounts=get_account_repository(request),
        statistics=get_statistics(request),
        default_region=settings.default_region,
        reject_ambiguous_requests=settings.reject_ambiguous_requests,
        allow_reregistration=settings.allow_reregistration,
    )


def get_request_context(settings: Settings = Depends(get_settings)) -> RequestContext:
    """Anonymous registration session on the configured domain."""
    return RequestContext(
        domain=settings.domain,
        registration_enabled=settings.registration_enabled,
    )
