"""
API v1 admin routes.

Host listings, approval decisions and the manual reminder trigger.

Approve and reject are served on two channels:
- bearer: an administrator session credential, JSON response
- email link (?email=true&token=...): a signed link from the host request
  email, HTML response for a browser

Handlers are plain functions so their blocking I/O runs in the threadpool.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import HTMLResponse
from fastapi.security import HTTPAuthorizationCredentials

from airena.adapters.tokens.jwt_codec import JwtTokenCodec
from airena.api.dependencies import (
    decode_bearer,
    get_admin_claims,
    get_approval_gate,
    get_reminder_scheduler,
    get_token_codec,
    http_bearer,
)
from airena.api.models import (
    ErrorResponse,
    HostDecisionResponse,
    HostRequestResponse,
    HostResponse,
    SweepReportResponse,
)
from airena.api.pages import error_page, result_page
from airena.config.settings import get_settings
from airena.domain.approval import ApprovalGate
from airena.domain.exceptions import AuthorizationFailure, IdentityNotFound
from airena.domain.ports import ApprovalAction, Identity, SessionClaims
from airena.domain.reminders import ReminderScheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

_DECISION_RESPONSES = {
    401: {"model": ErrorResponse, "description": "Not authenticated"},
    403: {"model": ErrorResponse, "description": "Not allowed or host already decided"},
    404: {"model": ErrorResponse, "description": "Identity not found"},
}


@router.get(
    "/host-requests",
    response_model=list[HostRequestResponse],
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Admin access required"},
    },
    summary="List pending host requests",
)
def list_host_requests(
    _: SessionClaims = Depends(get_admin_claims),
    gate: ApprovalGate = Depends(get_approval_gate),
) -> list[HostRequestResponse]:
    return [
        HostRequestResponse(
            id=identity.id,
            name=identity.name,
            email=identity.email,
            requested_at=identity.host_requested_at,
        )
        for identity in gate.pending_requests()
    ]


@router.get(
    "/hosts",
    response_model=list[HostResponse],
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Admin access required"},
    },
    summary="List all hosts with their approval state",
)
def list_hosts(
    _: SessionClaims = Depends(get_admin_claims),
    gate: ApprovalGate = Depends(get_approval_gate),
) -> list[HostResponse]:
    return [HostResponse.from_identity(identity) for identity in gate.all_hosts()]


@router.api_route(
    "/approve-host/{identity_id}",
    methods=["GET", "POST"],
    response_model=HostDecisionResponse,
    responses=_DECISION_RESPONSES,
    summary="Approve a pending host",
)
def approve_host(
    identity_id: UUID,
    email: bool = Query(default=False, description="Request came from an email link"),
    token: str | None = Query(default=None, description="Signed approval link token"),
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    codec: JwtTokenCodec = Depends(get_token_codec),
    gate: ApprovalGate = Depends(get_approval_gate),
) -> HostDecisionResponse | HTMLResponse:
    return _decide(ApprovalAction.APPROVE, identity_id, email, token, credentials, codec, gate)


@router.api_route(
    "/reject-host/{identity_id}",
    methods=["GET", "POST"],
    response_model=HostDecisionResponse,
    responses=_DECISION_RESPONSES,
    summary="Reject a pending host",
    description="Rejection deletes the identity. The host is notified by email first.",
)
def reject_host(
    identity_id: UUID,
    email: bool = Query(default=False, description="Request came from an email link"),
    token: str | None = Query(default=None, description="Signed approval link token"),
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    codec: JwtTokenCodec = Depends(get_token_codec),
    gate: ApprovalGate = Depends(get_approval_gate),
) -> HostDecisionResponse | HTMLResponse:
    return _decide(ApprovalAction.REJECT, identity_id, email, token, credentials, codec, gate)


@router.post(
    "/reminders/run",
    response_model=list[SweepReportResponse],
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Admin access required"},
    },
    summary="Run both reminder sweeps now",
)
def run_reminders(
    claims: SessionClaims = Depends(get_admin_claims),
    scheduler: ReminderScheduler = Depends(get_reminder_scheduler),
) -> list[SweepReportResponse]:
    logger.info("Manual reminder sweep requested by %s", claims.email)
    return [SweepReportResponse.from_report(report) for report in scheduler.trigger_manual()]


def _decide(
    action: ApprovalAction,
    identity_id: UUID,
    email: bool,
    token: str | None,
    credentials: HTTPAuthorizationCredentials | None,
    codec: JwtTokenCodec,
    gate: ApprovalGate,
) -> HostDecisionResponse | HTMLResponse:
    if email:
        return _decide_from_link(action, identity_id, token, gate)

    claims = decode_bearer(credentials, codec)
    try:
        identity = gate.act_as_admin(claims, action, identity_id)
    except IdentityNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found") from None
    except AuthorizationFailure as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from None

    if action == ApprovalAction.APPROVE:
        message = "Host approved successfully"
    else:
        message = "Host rejected and removed"
    return HostDecisionResponse(
        message=message,
        id=identity.id,
        name=identity.name,
        email=identity.email,
        host_approved=identity.host_approved,
        host_approved_at=identity.host_approved_at,
    )


def _decide_from_link(
    action: ApprovalAction, identity_id: UUID, token: str | None, gate: ApprovalGate
) -> HTMLResponse:
    if not token:
        return HTMLResponse(error_page("Invalid or expired approval link"), status_code=403)
    try:
        identity = gate.act_from_link(token, action, identity_id)
    except IdentityNotFound:
        return HTMLResponse(error_page("User not found"), status_code=404)
    except AuthorizationFailure as e:
        return HTMLResponse(error_page(str(e)), status_code=403)

    return HTMLResponse(_decision_page(action, identity))


def _decision_page(action: ApprovalAction, identity: Identity) -> str:
    dashboard_url = get_settings().dashboard_url
    if action == ApprovalAction.APPROVE:
        approved_at = identity.host_approved_at
        return result_page(
            title="Host Approved",
            heading="Host Approved Successfully",
            details={
                "Host Name": identity.name,
                "Email": identity.email,
                "Approved At": approved_at.isoformat() if approved_at else "",
            },
            footer="The host has been notified via email.",
            link=dashboard_url,
        )
    return result_page(
        title="Host Rejected",
        heading="Host Request Rejected",
        details={"Host Name": identity.name, "Email": identity.email},
        footer="The host has been notified and the account has been removed.",
        link=dashboard_url,
    )
