"""
Identity domain service - Lifecycle state machine implementation.

This module contains the business logic for registration and email
verification of identities.

Identity Lifecycle (derived from persisted flags)
=================================================

States:
- UNVERIFIED: Created at registration, a one-time code has been issued
- EMAIL_VERIFIED: Code verified; PARTICIPANT and ADMIN are fully active here
- PENDING_APPROVAL: HOST with a verified email, waiting for an administrator
- APPROVED: HOST approved by an administrator

Transitions:
    UNVERIFIED -> EMAIL_VERIFIED     (verify_email, non-HOST)
    UNVERIFIED -> PENDING_APPROVAL   (verify_email, HOST not yet approved)
    PENDING_APPROVAL -> APPROVED     (ApprovalGate.approve)
    PENDING_APPROVAL -> deleted      (ApprovalGate.reject)

Role policy:
- The configured administrator email always registers as ADMIN
- HOST and ORGANIZER are synonyms, stored as HOST
- Registration never sets the host-approval flag
"""

import logging
from dataclasses import dataclass
from uuid import UUID, uuid4

import bcrypt

from .approval import ApprovalGate
from .exceptions import (
    AuthenticationFailure,
    AuthorizationFailure,
    EmailAlreadyRegistered,
    IdentityNotFound,
    InvalidPassword,
)
from .otc import OtcService
from .ports import Identity, IdentityRepository, NewIdentity, Role

logger = logging.getLogger(__name__)

HOST_SYNONYMS = frozenset({Role.HOST, Role.ORGANIZER})

# bcrypt only accepts up to 72 bytes of input
MAX_PASSWORD_BYTES = 72


@dataclass
class IdentityService:
    """
    Domain service for identity registration and email verification.

    Orchestrates email normalization, role resolution, password hashing,
    identity persistence and the one-time code flow.
    """

    repository: IdentityRepository
    otc_service: OtcService
    approval_gate: ApprovalGate
    admin_email: str
    bcrypt_cost: int = 10

    def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: Role | str | None = None,
    ) -> Identity:
        """
        Register a new identity and send it a verification code.

        Args:
            email: Email address (will be normalized)
            password: Password (will be hashed)
            first_name: Given name
            last_name: Family name
            role: Requested role, PARTICIPANT when omitted

        Returns:
            The created identity, in the UNVERIFIED state

        Raises:
            EmailAlreadyRegistered: If the email is already registered
            AuthorizationFailure: If ADMIN is requested for a non-admin email
            InvalidPassword: If the password is longer than MAX_PASSWORD_BYTES
        """
        normalized_email = self._normalize_email(email)
        resolved_role = self.resolve_role(normalized_email, role)

        identity = self.repository.create_identity(
            NewIdentity(
                id=uuid4(),
                email=normalized_email,
                password_hash=self._hash_password(password),
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                role=resolved_role,
            )
        )
        if identity is None:
            raise EmailAlreadyRegistered(normalized_email)

        logger.info("Registered %s as %s", identity.email, identity.role.value)
        self.otc_service.issue(identity.id)
        return identity

    def resolve_role(self, normalized_email: str, requested: Role | str | None) -> Role:
        if normalized_email == self._normalize_email(self.admin_email):
            return Role.ADMIN
        if requested is None:
            return Role.PARTICIPANT

        role = Role(requested.upper()) if isinstance(requested, str) else requested
        if role in HOST_SYNONYMS:
            return Role.HOST
        if role == Role.ADMIN:
            raise AuthorizationFailure("ADMIN role cannot be requested")
        return role

    def request_otc(self, email: str) -> None:
        """
        Issue a fresh verification code for a registered email.

        Raises:
            IdentityNotFound: If no identity has this email
        """
        identity = self.find_by_email(email)
        self.otc_service.issue(identity.id)

    def verify_email(self, identity_id: UUID, code: str) -> Identity:
        """
        Verify an identity's email with a one-time code.

        On success a HOST that is not yet approved is submitted for
        administrator review; every other identity is active.

        Returns:
            The identity after verification

        Raises:
            AuthenticationFailure: If the code is missing, wrong or expired
        """
        if not self.otc_service.verify(identity_id, code):
            raise AuthenticationFailure("Invalid or expired code")

        identity = self.repository.get_by_id(identity_id)
        if identity is None:
            raise IdentityNotFound(str(identity_id))

        if identity.role == Role.HOST and not identity.host_approved:
            return self.approval_gate.submit_for_review(identity)

        logger.info("Email verified for %s", identity.email)
        return identity

    def verify_email_for(self, email: str, code: str) -> Identity:
        """Email-addressed variant of verify_email; unknown emails fail like bad codes."""
        try:
            identity = self.find_by_email(email)
        except IdentityNotFound:
            raise AuthenticationFailure("Invalid or expired code") from None
        return self.verify_email(identity.id, code)

    def get(self, identity_id: UUID) -> Identity:
        identity = self.repository.get_by_id(identity_id)
        if identity is None:
            raise IdentityNotFound(str(identity_id))
        return identity

    def find_by_email(self, email: str) -> Identity:
        normalized_email = self._normalize_email(email)
        identity = self.repository.get_by_email(normalized_email)
        if identity is None:
            raise IdentityNotFound(normalized_email)
        return identity

    def _normalize_email(self, email: str) -> str:
        """
        Normalize email address for consistent storage and lookup.

        Applies: strip whitespace + lowercase
        """
        return email.strip().lower()

    def _hash_password(self, password: str) -> str:
        if len(password.encode()) > MAX_PASSWORD_BYTES:
            raise InvalidPassword(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=self.bcrypt_cost)).decode()
