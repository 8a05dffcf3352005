"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the value types the domain works with and the
interfaces (ports) that the domain requires from infrastructure.
Adapters implement these protocols.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Protocol
from uuid import UUID

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class Role(str, Enum):
    """Identity roles. ORGANIZER is accepted as a synonym and stored as HOST."""

    PARTICIPANT = "PARTICIPANT"
    HOST = "HOST"
    ORGANIZER = "ORGANIZER"
    ADMIN = "ADMIN"


class LifecycleState(str, Enum):
    """
    Identity lifecycle states, derived from the identity's flags.

    Transitions:
    - UNVERIFIED -> EMAIL_VERIFIED (OTC verified, non-HOST roles are active here)
    - UNVERIFIED -> PENDING_APPROVAL (HOST, OTC verified, not yet approved)
    - PENDING_APPROVAL -> APPROVED (administrator approval)
    - PENDING_APPROVAL -> identity deleted (administrator rejection)

    There is no REJECTED resting state: rejection removes the record.
    """

    UNVERIFIED = "UNVERIFIED"
    EMAIL_VERIFIED = "EMAIL_VERIFIED"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"


class EventStatus(str, Enum):
    UPCOMING = "UPCOMING"
    LIVE = "LIVE"
    ENDED = "ENDED"


class ReminderClass(str, Enum):
    """Reminder categories. Only DAILY keys carry a calendar date."""

    DAILY = "DAILY"
    FINAL_DAY = "FINAL_DAY"
    ONE_HOUR = "ONE_HOUR"


class ApprovalAction(str, Enum):
    """Administrative decisions on a HOST request, named after their link paths."""

    APPROVE = "approve-host"
    REJECT = "reject-host"


@dataclass(frozen=True)
class Identity:
    """Persisted identity record."""

    id: UUID
    email: str
    password_hash: str
    first_name: str
    last_name: str
    role: Role
    email_verified: bool = False
    otc_hash: str | None = None
    otc_expires_at: datetime | None = None
    host_approved: bool = False
    host_approved_at: datetime | None = None
    host_requested_at: datetime | None = None
    last_login_at: datetime | None = None
    created_at: datetime | None = None

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def lifecycle_state(self) -> LifecycleState:
        if not self.email_verified:
            return LifecycleState.UNVERIFIED
        if self.role != Role.HOST:
            return LifecycleState.EMAIL_VERIFIED
        if self.host_approved:
            return LifecycleState.APPROVED
        return LifecycleState.PENDING_APPROVAL

    @property
    def is_active(self) -> bool:
        return self.lifecycle_state in (LifecycleState.EMAIL_VERIFIED, LifecycleState.APPROVED)


@dataclass(frozen=True)
class NewIdentity:
    """Identity fields supplied at registration."""

    id: UUID
    email: str
    password_hash: str
    first_name: str
    last_name: str
    role: Role


@dataclass(frozen=True)
class Event:
    """Hackathon event, read-only from the reminder sweeps."""

    id: UUID
    title: str
    submission_deadline: datetime
    status: EventStatus
    organizer_name: str = ""


@dataclass(frozen=True)
class Recipient:
    """Participant of an event who has no qualifying submission."""

    identity_id: UUID
    email: str
    first_name: str
    last_name: str

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class LedgerKey:
    """
    Idempotency key of a reminder.

    The composite (recipient, event, class, date) is unique in the ledger;
    the date component is present for DAILY reminders only.
    """

    recipient_id: UUID
    event_id: UUID
    reminder_class: ReminderClass
    reminder_date: date | None = None

    def __post_init__(self) -> None:
        if (self.reminder_class == ReminderClass.DAILY) != (self.reminder_date is not None):
            raise ValueError("reminder_date is required for DAILY reminders and only for them")

    @property
    def name(self) -> str:
        """Stable lookup name: REMINDER_<eventId>_<class>[_<date>]."""
        name = f"REMINDER_{self.event_id}_{self.reminder_class.value}"
        if self.reminder_date is not None:
            name = f"{name}_{self.reminder_date.isoformat()}"
        return name


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    html: str


@dataclass(frozen=True)
class SessionClaims:
    """Claims carried by a session credential."""

    subject: UUID
    email: str
    role: Role
    expires_at: datetime


@dataclass(frozen=True)
class IssuedSession:
    token: str
    expires_at: datetime


class IdentityRepository(Protocol):
    """Port interface for identity persistence."""

    def create_identity(self, identity: NewIdentity) -> Identity | None:
        """
        Atomically create an identity in the UNVERIFIED state.

        Returns:
            The stored identity, or None if the email is already registered
        """
        ...

    def get_by_id(self, identity_id: UUID) -> Identity | None: ...

    def get_by_email(self, email: str) -> Identity | None: ...

    def store_otc(self, identity_id: UUID, otc_hash: str, expires_at: datetime) -> bool:
        """Replace any pending code with a new one. Returns False if the identity is gone."""
        ...

    def consume_otc(self, identity_id: UUID, otc_hash: str) -> bool:
        """
        Mark the email verified and clear the pending code.

        Conditional on the stored hash still being `otc_hash`, so exactly one
        of several concurrent consumers of the same code succeeds.
        """
        ...

    def clear_otc(self, identity_id: UUID, otc_hash: str) -> None:
        """Clear the pending code if it is still `otc_hash`."""
        ...

    def mark_host_requested(self, identity_id: UUID, requested_at: datetime) -> Identity | None: ...

    def approve_host(
        self,
        identity_id: UUID,
        approved_at: datetime,
        otc_hash: str,
        otc_expires_at: datetime,
    ) -> Identity | None:
        """
        Approve a pending HOST and store a fresh code in one statement.

        Returns:
            The approved identity, or None if it is not an unapproved HOST
        """
        ...

    def delete_pending_host(
        self,
        identity_id: UUID,
        before_delete: Callable[[Identity], None] | None = None,
    ) -> bool:
        """
        Delete an unapproved HOST. Returns False if nothing was deleted.

        `before_delete` runs with the identity while it is still locked
        against a concurrent approval; it is not called when nothing
        qualifies for deletion.
        """
        ...

    def list_pending_hosts(self) -> list[Identity]: ...

    def list_hosts(self) -> list[Identity]:
        """Every HOST identity, approved or not, newest first."""
        ...

    def record_login(self, identity_id: UUID, logged_in_at: datetime) -> None: ...


class ReminderRepository(Protocol):
    """Port interface for the event data and the reminder ledger."""

    def list_events_due(
        self,
        statuses: Sequence[EventStatus],
        after: datetime,
        until: datetime | None = None,
    ) -> list[Event]:
        """Events in `statuses` whose submission deadline is in (after, until]."""
        ...

    def list_pending_recipients(self, event_id: UUID) -> list[Recipient]:
        """Participants of the event with no non-draft submission, alone or by team."""
        ...

    def claim_reminder(self, key: LedgerKey, claimed_at: datetime) -> bool:
        """
        Insert a ledger entry unless one exists for the same key.

        Returns:
            True if this call created the entry, False if it already existed
        """
        ...


class EmailTransport(Protocol):
    """Port interface for a single delivery attempt."""

    def deliver(self, to: str, subject: str, html: str) -> None:
        """
        Hand one rendered message to the mail provider.

        Raises:
            DeliveryError: transient failure, may be retried
            PermanentDeliveryError: the provider rejected the message
        """
        ...


class EmailDispatcher(Protocol):
    """Port interface for email delivery with bounded retry."""

    def send(self, message: EmailMessage) -> bool:
        """Deliver a message. Never raises; returns False if delivery failed."""
        ...


class TokenSigner(Protocol):
    """Port interface for signed session credentials and approval links."""

    def issue_session(self, identity: Identity) -> IssuedSession: ...

    def decode_session(self, token: str) -> SessionClaims:
        """Raises AuthenticationFailure for invalid or expired tokens."""
        ...

    def issue_approval_token(self, identity_id: UUID, action: ApprovalAction) -> str: ...

    def verify_approval_token(self, token: str, identity_id: UUID, action: ApprovalAction) -> None:
        """Raises AuthorizationFailure unless the token grants `action` on `identity_id`."""
        ...
