"""
API v1 auth routes.

Registration, email verification and two-step login.

Handlers are plain functions: FastAPI runs them in its threadpool, so
blocking database calls and email retries never stall the event loop.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from airena.api.dependencies import get_identity_service, get_session_claims, get_session_issuer
from airena.api.models import (
    EmailCodeRequest,
    ErrorResponse,
    IdentityResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    SendOtcRequest,
    SessionResponse,
    VerifyEmailResponse,
)
from airena.config.settings import get_settings
from airena.domain.exceptions import (
    AuthenticationFailure,
    AuthorizationFailure,
    EmailAlreadyRegistered,
    IdentityNotFound,
    InvalidPassword,
)
from airena.domain.identity import IdentityService
from airena.domain.ports import LifecycleState, SessionClaims
from airena.domain.session import SessionIssuer

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"model": ErrorResponse, "description": "Role not allowed"},
        409: {"model": ErrorResponse, "description": "Email already registered"},
        422: {"description": "Validation error"},
    },
    summary="Register a new identity",
    description="Create an identity and send a 6-digit verification code to its email.",
)
def register(
    request_data: RegisterRequest,
    service: IdentityService = Depends(get_identity_service),
) -> RegisterResponse:
    try:
        identity = service.register(
            request_data.email,
            request_data.password,
            request_data.first_name,
            request_data.last_name,
            request_data.role,
        )
    except EmailAlreadyRegistered:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Registration failed",
        ) from None
    except AuthorizationFailure as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from None
    except InvalidPassword as e:
        raise HTTPException(status_code=422, detail=str(e)) from None

    return RegisterResponse(
        message="Verification code sent",
        identity=IdentityResponse.from_identity(identity),
        otc_expires_in_seconds=get_settings().otc_ttl_seconds,
    )


@router.post(
    "/send-otc",
    response_model=MessageResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Send a new verification code",
    description="Issue a fresh code for a registered email. The response does not "
    "reveal whether the email is registered.",
)
def send_otc(
    request_data: SendOtcRequest,
    service: IdentityService = Depends(get_identity_service),
) -> MessageResponse:
    try:
        service.request_otc(request_data.email)
    except IdentityNotFound:
        pass
    return MessageResponse(message="If the email is registered, a verification code has been sent")


@router.post(
    "/verify-email",
    response_model=VerifyEmailResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid or expired code"}},
    summary="Verify email with a one-time code",
)
def verify_email(
    request_data: EmailCodeRequest,
    service: IdentityService = Depends(get_identity_service),
) -> VerifyEmailResponse:
    try:
        identity = service.verify_email_for(request_data.email, request_data.code)
    except AuthenticationFailure:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired code",
        ) from None

    if identity.lifecycle_state == LifecycleState.PENDING_APPROVAL:
        message = "Email verified. Your host request has been sent to admin for approval."
    else:
        message = "Email verified successfully"
    return VerifyEmailResponse(message=message, identity=IdentityResponse.from_identity(identity))


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}},
    summary="Check credentials and send a login code",
    description="Login is always two steps: this call sends a one-time code and never "
    "returns a session credential. Complete it with POST /v1/auth/login/verify.",
)
def login(
    request_data: LoginRequest,
    issuer: SessionIssuer = Depends(get_session_issuer),
) -> LoginResponse:
    try:
        challenge = issuer.login(request_data.email, request_data.password)
    except AuthenticationFailure:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        ) from None

    return LoginResponse(
        message="Verification code sent",
        email=challenge.email,
        otc_expires_at=challenge.otc_expires_at,
    )


@router.post(
    "/login/verify",
    response_model=SessionResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid or expired code"},
        403: {"model": ErrorResponse, "description": "Host approval pending"},
    },
    summary="Complete login with a one-time code",
)
def complete_login(
    request_data: EmailCodeRequest,
    issuer: SessionIssuer = Depends(get_session_issuer),
) -> SessionResponse:
    try:
        result = issuer.complete_login(request_data.email, request_data.code)
    except AuthenticationFailure:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired code",
        ) from None
    except AuthorizationFailure as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from None

    return SessionResponse(
        access_token=result.session.token,
        expires_at=result.session.expires_at,
        identity=IdentityResponse.from_identity(result.identity),
    )


@router.get(
    "/me",
    response_model=IdentityResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Identity no longer exists"},
    },
    summary="Get the current identity",
)
def me(
    claims: SessionClaims = Depends(get_session_claims),
    service: IdentityService = Depends(get_identity_service),
) -> IdentityResponse:
    try:
        identity = service.get(claims.subject)
    except IdentityNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found") from None
    return IdentityResponse.from_identity(identity)
