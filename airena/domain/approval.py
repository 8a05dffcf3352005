"""
Approval gate - Administrative decisions on HOST identities.

A HOST becomes usable only after an administrator approves it. The
decision is reachable through two entry points that converge on the same
capability-checked operation:

- act_as_admin(): caller holds an administrator session credential
- act_from_link(): caller holds a signed, expiring link from the host
  request email

Approval stores the approval flag, its timestamp and a fresh OTC in one
write, then emails the code and an approval notice. Rejection emails a
notice and then deletes the identity, holding the record against a
concurrent approval in between; there is no rejected state.

Email failures after a committed decision are logged and never undo it.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from uuid import UUID

from .exceptions import AuthorizationFailure, IdentityNotFound
from .messages import host_approved_message, host_rejected_message, host_request_message
from .otc import OtcService
from .ports import (
    ApprovalAction,
    Clock,
    EmailDispatcher,
    Identity,
    IdentityRepository,
    Role,
    SessionClaims,
    TokenSigner,
    utc_now,
)

logger = logging.getLogger(__name__)


@dataclass
class ApprovalGate:
    """Domain service for approving or rejecting HOST identities."""

    repository: IdentityRepository
    otc_service: OtcService
    dispatcher: EmailDispatcher
    tokens: TokenSigner
    admin_email: str
    public_base_url: str
    clock: Clock = utc_now

    def submit_for_review(self, identity: Identity) -> Identity:
        """
        Record a host request and notify the administrator.

        The notification carries signed approve and reject links.
        """
        requested = self.repository.mark_host_requested(identity.id, self.clock())
        if requested is None:
            raise IdentityNotFound(str(identity.id))

        message = host_request_message(
            self.admin_email,
            requested,
            approve_url=self.approval_link(requested.id, ApprovalAction.APPROVE),
            reject_url=self.approval_link(requested.id, ApprovalAction.REJECT),
        )
        if not self.dispatcher.send(message):
            logger.error("Host request notification for %s could not be delivered", requested.email)
        logger.info("Host %s submitted for administrator review", requested.email)
        return requested

    def approval_link(self, identity_id: UUID, action: ApprovalAction) -> str:
        token = self.tokens.issue_approval_token(identity_id, action)
        base = self.public_base_url.rstrip("/")
        return f"{base}/v1/admin/{action.value}/{identity_id}?email=true&token={token}"

    def pending_requests(self) -> list[Identity]:
        """HOST identities awaiting a decision, most recent request first."""
        return self.repository.list_pending_hosts()

    def all_hosts(self) -> list[Identity]:
        """Every HOST identity with its approval state, newest first."""
        return self.repository.list_hosts()

    def act_as_admin(
        self, claims: SessionClaims, action: ApprovalAction, identity_id: UUID
    ) -> Identity:
        """Entry point for an authenticated administrator session."""
        if claims.role != Role.ADMIN:
            raise AuthorizationFailure("Admin access required")
        return self._decide(action, identity_id)

    def act_from_link(self, token: str, action: ApprovalAction, identity_id: UUID) -> Identity:
        """Entry point for a signed link embedded in the host request email."""
        self.tokens.verify_approval_token(token, identity_id, action)
        return self._decide(action, identity_id)

    def approve(self, identity_id: UUID) -> Identity:
        """
        Approve a pending HOST.

        Raises:
            IdentityNotFound: If the identity does not exist
            AuthorizationFailure: If it is not a HOST or is already approved
        """
        identity = self._get_pending_host(identity_id)

        prepared = self.otc_service.prepare()
        approved = self.repository.approve_host(
            identity.id, self.clock(), prepared.code_hash, prepared.expires_at
        )
        if approved is None:
            # Lost a race with another decision on the same identity
            raise AuthorizationFailure("Host is already approved")

        logger.info("Host %s approved", approved.email)

        # Approval may precede verification, so the email step is reopened
        self.otc_service.deliver(approved.email, prepared)
        if not self.dispatcher.send(host_approved_message(approved)):
            logger.error("Host approval notice for %s could not be delivered", approved.email)
        return approved

    def reject(self, identity_id: UUID) -> Identity:
        """
        Reject a pending HOST and delete the identity.

        The rejection notice goes out before the record is deleted, while
        the repository holds it against a concurrent approval. A host
        approved first is never notified.

        Returns:
            The identity as it was before deletion

        Raises:
            IdentityNotFound: If the identity does not exist
            AuthorizationFailure: If it is not a HOST or is already approved
        """
        identity = self._get_pending_host(identity_id)

        if not self.repository.delete_pending_host(identity.id, self._send_rejection_notice):
            # Lost a race with an approval
            raise AuthorizationFailure("Host is already approved")

        logger.info("Host %s rejected and removed", identity.email)
        return identity

    def _send_rejection_notice(self, identity: Identity) -> None:
        if not self.dispatcher.send(host_rejected_message(identity, self.clock())):
            logger.error("Host rejection notice for %s could not be delivered", identity.email)

    def _decide(self, action: ApprovalAction, identity_id: UUID) -> Identity:
        decisions: dict[ApprovalAction, Callable[[UUID], Identity]] = {
            ApprovalAction.APPROVE: self.approve,
            ApprovalAction.REJECT: self.reject,
        }
        return decisions[action](identity_id)

    def _get_pending_host(self, identity_id: UUID) -> Identity:
        identity = self.repository.get_by_id(identity_id)
        if identity is None:
            raise IdentityNotFound(str(identity_id))
        if identity.role != Role.HOST:
            raise AuthorizationFailure("User is not a host")
        if identity.host_approved:
            raise AuthorizationFailure("Host is already approved")
        return identity
