"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from datetime import datetime
from typing import Annotated, Literal
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from airena.domain.ports import Identity
from airena.domain.reminders import SweepReport

OtcCode = Annotated[
    str,
    Field(min_length=6, max_length=6, pattern=r"^\d{6}$", description="6-digit one-time code"),
]


class RegisterRequest(BaseModel):
    """Request model for identity registration."""

    email: EmailStr
    password: str = Field(
        ..., min_length=8, max_length=72, description="Password (8 to 72 characters)"
    )
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    role: Literal["PARTICIPANT", "HOST", "ORGANIZER"] | None = Field(
        default=None, description="Requested role; ORGANIZER is stored as HOST"
    )


class IdentityResponse(BaseModel):
    """Public view of an identity."""

    id: UUID
    email: str
    first_name: str
    last_name: str
    role: str
    state: str
    email_verified: bool
    host_approved: bool

    @classmethod
    def from_identity(cls, identity: Identity) -> "IdentityResponse":
        return cls(
            id=identity.id,
            email=identity.email,
            first_name=identity.first_name,
            last_name=identity.last_name,
            role=identity.role.value,
            state=identity.lifecycle_state.value,
            email_verified=identity.email_verified,
            host_approved=identity.host_approved,
        )


class RegisterResponse(BaseModel):
    """Response model for successful registration."""

    message: str
    identity: IdentityResponse
    otc_expires_in_seconds: int


class EmailCodeRequest(BaseModel):
    """Request model carrying an email and a one-time code."""

    email: EmailStr
    code: OtcCode


class SendOtcRequest(BaseModel):
    email: EmailStr


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    """Response model for a successful credential check. Never carries a session."""

    message: str
    email: str
    verification_required: bool = True
    otc_expires_at: datetime


class SessionResponse(BaseModel):
    """Response model carrying a session credential."""

    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    identity: IdentityResponse


class VerifyEmailResponse(BaseModel):
    message: str
    identity: IdentityResponse


class MessageResponse(BaseModel):
    message: str


class HostRequestResponse(BaseModel):
    """A HOST identity waiting for an administrator decision."""

    id: UUID
    name: str
    email: str
    requested_at: datetime | None
    status: str = "pending"


class HostResponse(BaseModel):
    """A HOST identity with its approval state."""

    id: UUID
    name: str
    email: str
    state: str
    email_verified: bool
    host_approved: bool
    host_approved_at: datetime | None
    host_requested_at: datetime | None
    created_at: datetime | None

    @classmethod
    def from_identity(cls, identity: Identity) -> "HostResponse":
        return cls(
            id=identity.id,
            name=identity.name,
            email=identity.email,
            state=identity.lifecycle_state.value,
            email_verified=identity.email_verified,
            host_approved=identity.host_approved,
            host_approved_at=identity.host_approved_at,
            host_requested_at=identity.host_requested_at,
            created_at=identity.created_at,
        )


class HostDecisionResponse(BaseModel):
    """Result of an approve or reject decision."""

    message: str
    id: UUID
    name: str
    email: str
    host_approved: bool
    host_approved_at: datetime | None = None


class SweepReportResponse(BaseModel):
    sweep: str
    events: int
    sent: int
    duplicates: int
    failed: int

    @classmethod
    def from_report(cls, report: SweepReport) -> "SweepReportResponse":
        return cls(
            sweep=report.sweep,
            events=report.events,
            sent=report.sent,
            duplicates=report.duplicates,
            failed=report.failed,
        )


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
