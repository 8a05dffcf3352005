"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from datetime import timedelta
from functools import lru_cache

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from psycopg_pool import ConnectionPool

from airena.adapters.repository.postgres import (
    PostgresIdentityRepository,
    PostgresReminderRepository,
)
from airena.adapters.smtp.brevo import BrevoEmailSender
from airena.adapters.smtp.console import ConsoleEmailSender
from airena.adapters.smtp.dispatcher import RetryingEmailDispatcher
from airena.adapters.tokens.jwt_codec import JwtTokenCodec
from airena.config.settings import get_settings
from airena.domain.approval import ApprovalGate
from airena.domain.exceptions import AuthenticationFailure
from airena.domain.identity import IdentityService
from airena.domain.otc import OtcService
from airena.domain.ports import Role, SessionClaims
from airena.domain.reminders import ReminderScheduler
from airena.domain.session import SessionIssuer


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_identity_repository(request: Request) -> PostgresIdentityRepository:
    """Create identity repository with connection pool from app state."""
    return PostgresIdentityRepository(get_pool(request))


def get_reminder_repository(request: Request) -> PostgresReminderRepository:
    return PostgresReminderRepository(get_pool(request))


@lru_cache
def get_email_dispatcher() -> RetryingEmailDispatcher:
    """
    Get the email dispatcher (singleton).

    The transport is chosen by settings.email_backend.
    """
    settings = get_settings()
    if settings.email_backend == "brevo":
        transport = BrevoEmailSender(
            api_key=settings.brevo_api_key,
            sender_email=settings.email_from,
            sender_name=settings.email_from_name,
        )
    else:
        transport = ConsoleEmailSender()
    return RetryingEmailDispatcher(
        transport,
        max_attempts=settings.email_max_attempts,
        backoff_seconds=settings.email_retry_backoff_seconds,
    )


@lru_cache
def get_token_codec() -> JwtTokenCodec:
    """Get the session and approval-link token codec (singleton)."""
    settings = get_settings()
    return JwtTokenCodec(
        secret=settings.session_secret,
        session_ttl=timedelta(seconds=settings.session_ttl_seconds),
        approval_ttl=timedelta(seconds=settings.approval_link_ttl_seconds),
    )


def get_otc_service(request: Request) -> OtcService:
    settings = get_settings()
    return OtcService(
        repository=get_identity_repository(request),
        dispatcher=get_email_dispatcher(),
        ttl=timedelta(seconds=settings.otc_ttl_seconds),
        bcrypt_cost=settings.bcrypt_cost,
    )


def get_approval_gate(request: Request) -> ApprovalGate:
    """Create the approval gate with injected dependencies."""
    settings = get_settings()
    return ApprovalGate(
        repository=get_identity_repository(request),
        otc_service=get_otc_service(request),
        dispatcher=get_email_dispatcher(),
        tokens=get_token_codec(),
        admin_email=settings.admin_email,
        public_base_url=settings.public_base_url,
    )


def get_identity_service(request: Request) -> IdentityService:
    """
    Create identity service with injected dependencies.

    Wires together the repository, OTC service and approval gate.
    """
    settings = get_settings()
    return IdentityService(
        repository=get_identity_repository(request),
        otc_service=get_otc_service(request),
        approval_gate=get_approval_gate(request),
        admin_email=settings.admin_email,
        bcrypt_cost=settings.bcrypt_cost,
    )


def get_session_issuer(request: Request) -> SessionIssuer:
    return SessionIssuer(
        repository=get_identity_repository(request),
        otc_service=get_otc_service(request),
        tokens=get_token_codec(),
    )


def get_reminder_scheduler(request: Request) -> ReminderScheduler:
    return ReminderScheduler(
        repository=get_reminder_repository(request),
        dispatcher=get_email_dispatcher(),
        dashboard_url=get_settings().dashboard_url,
    )


# Bearer security scheme for OpenAPI documentation. Missing credentials are
# handled per route because the email-originated approval links carry none.
http_bearer = HTTPBearer(auto_error=False)


def decode_bearer(
    credentials: HTTPAuthorizationCredentials | None, codec: JwtTokenCodec
) -> SessionClaims:
    """
    Decode a bearer session credential.

    Raises:
        HTTPException: 401 if the credential is missing, invalid or expired
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return codec.decode_session(credentials.credentials)
    except AuthenticationFailure:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None


def get_session_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    codec: JwtTokenCodec = Depends(get_token_codec),
) -> SessionClaims:
    return decode_bearer(credentials, codec)


def get_admin_claims(claims: SessionClaims = Depends(get_session_claims)) -> SessionClaims:
    """Require an administrator session."""
    if claims.role != Role.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return claims
