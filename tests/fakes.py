"""
In-memory implementations of the domain ports.

Used by unit tests in place of PostgreSQL and the mail provider. They
follow the same conditional-write rules as the PostgreSQL adapters.
"""

import re
import threading
from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import bcrypt

from airena.domain.ports import (
    EmailMessage,
    Event,
    EventStatus,
    Identity,
    LedgerKey,
    NewIdentity,
    Recipient,
    Role,
)

TEST_BCRYPT_COST = 4
ADMIN_EMAIL = "admin@airena.dev"
TEST_SECRET = "unit-test-signing-key-0123456789abcdef"
PUBLIC_BASE_URL = "https://api.airena.dev"

_CODE_PATTERN = re.compile(r"<strong>(\d{6})</strong>")


def make_identity(
    email: str = "user@example.com",
    password: str = "secure123",
    role: Role = Role.PARTICIPANT,
    **overrides,
) -> Identity:
    """Build an identity with a real bcrypt password hash."""
    fields = {
        "id": uuid4(),
        "email": email,
        "password_hash": bcrypt.hashpw(
            password.encode(), bcrypt.gensalt(rounds=TEST_BCRYPT_COST)
        ).decode(),
        "first_name": "Test",
        "last_name": "User",
        "role": role,
    }
    fields.update(overrides)
    return Identity(**fields)


class FakeClock:
    """Controllable clock; call it to read the current time."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class InMemoryIdentityRepository:
    """Implements IdentityRepository protocol with a dict."""

    def __init__(self) -> None:
        self.identities: dict[UUID, Identity] = {}
        self._lock = threading.Lock()

    def add(self, identity: Identity) -> Identity:
        self.identities[identity.id] = identity
        return identity

    def create_identity(self, identity: NewIdentity) -> Identity | None:
        with self._lock:
            if self.get_by_email(identity.email) is not None:
                return None
            stored = Identity(
                id=identity.id,
                email=identity.email,
                password_hash=identity.password_hash,
                first_name=identity.first_name,
                last_name=identity.last_name,
                role=identity.role,
                created_at=datetime.now(timezone.utc),
            )
            self.identities[stored.id] = stored
            return stored

    def get_by_id(self, identity_id: UUID) -> Identity | None:
        return self.identities.get(identity_id)

    def get_by_email(self, email: str) -> Identity | None:
        for identity in self.identities.values():
            if identity.email == email:
                return identity
        return None

    def store_otc(self, identity_id: UUID, otc_hash: str, expires_at: datetime) -> bool:
        return self._update(identity_id, otc_hash=otc_hash, otc_expires_at=expires_at) is not None

    def consume_otc(self, identity_id: UUID, otc_hash: str) -> bool:
        with self._lock:
            identity = self.identities.get(identity_id)
            if identity is None or identity.otc_hash != otc_hash:
                return False
            self.identities[identity_id] = replace(
                identity, email_verified=True, otc_hash=None, otc_expires_at=None
            )
            return True

    def clear_otc(self, identity_id: UUID, otc_hash: str) -> None:
        with self._lock:
            identity = self.identities.get(identity_id)
            if identity is not None and identity.otc_hash == otc_hash:
                self.identities[identity_id] = replace(identity, otc_hash=None, otc_expires_at=None)

    def mark_host_requested(self, identity_id: UUID, requested_at: datetime) -> Identity | None:
        identity = self.identities.get(identity_id)
        if identity is None:
            return None
        return self._update(identity_id, host_requested_at=identity.host_requested_at or requested_at)

    def approve_host(
        self,
        identity_id: UUID,
        approved_at: datetime,
        otc_hash: str,
        otc_expires_at: datetime,
    ) -> Identity | None:
        with self._lock:
            identity = self.identities.get(identity_id)
            if identity is None or identity.role != Role.HOST or identity.host_approved:
                return None
            approved = replace(
                identity,
                host_approved=True,
                host_approved_at=approved_at,
                otc_hash=otc_hash,
                otc_expires_at=otc_expires_at,
            )
            self.identities[identity_id] = approved
            return approved

    def delete_pending_host(
        self,
        identity_id: UUID,
        before_delete: Callable[[Identity], None] | None = None,
    ) -> bool:
        with self._lock:
            identity = self.identities.get(identity_id)
            if identity is None or identity.role != Role.HOST or identity.host_approved:
                return False
            if before_delete is not None:
                before_delete(identity)
            del self.identities[identity_id]
            return True

    def list_pending_hosts(self) -> list[Identity]:
        pending = [
            identity
            for identity in self.identities.values()
            if identity.role == Role.HOST
            and not identity.host_approved
            and identity.host_requested_at is not None
        ]
        return sorted(pending, key=lambda identity: identity.host_requested_at, reverse=True)

    def list_hosts(self) -> list[Identity]:
        # Insertion order stands in for created_at
        return [
            identity
            for identity in reversed(self.identities.values())
            if identity.role == Role.HOST
        ]

    def record_login(self, identity_id: UUID, logged_in_at: datetime) -> None:
        self._update(identity_id, last_login_at=logged_in_at)

    def _update(self, identity_id: UUID, **changes) -> Identity | None:
        with self._lock:
            identity = self.identities.get(identity_id)
            if identity is None:
                return None
            updated = replace(identity, **changes)
            self.identities[identity_id] = updated
            return updated


class InMemoryReminderRepository:
    """Implements ReminderRepository protocol; the ledger is a guarded dict."""

    def __init__(self) -> None:
        self.events: list[Event] = []
        self.recipients: dict[UUID, list[Recipient]] = {}
        self.submitted: set[tuple[UUID, UUID]] = set()
        self.ledger: dict[tuple[UUID, str], datetime] = {}
        self._lock = threading.Lock()

    def add_event(
        self,
        deadline: datetime,
        status: EventStatus = EventStatus.LIVE,
        recipients: int = 1,
        title: str = "Build Week",
    ) -> Event:
        event = Event(
            id=uuid4(),
            title=title,
            submission_deadline=deadline,
            status=status,
            organizer_name="Olivia Organizer",
        )
        self.events.append(event)
        self.recipients[event.id] = [
            Recipient(
                identity_id=uuid4(),
                email=f"participant{i}@example.com",
                first_name="Participant",
                last_name=str(i),
            )
            for i in range(recipients)
        ]
        return event

    def list_events_due(
        self,
        statuses: Sequence[EventStatus],
        after: datetime,
        until: datetime | None = None,
    ) -> list[Event]:
        return [
            event
            for event in self.events
            if event.status in statuses
            and event.submission_deadline > after
            and (until is None or event.submission_deadline <= until)
        ]

    def mark_submitted(self, event_id: UUID, email: str) -> Recipient:
        """Record a qualifying submission for one participant of `event_id`."""
        recipient = next(r for r in self.recipients[event_id] if r.email == email)
        self.submitted.add((event_id, recipient.identity_id))
        return recipient

    def list_pending_recipients(self, event_id: UUID) -> list[Recipient]:
        return [
            recipient
            for recipient in self.recipients.get(event_id, [])
            if (event_id, recipient.identity_id) not in self.submitted
        ]

    def claim_reminder(self, key: LedgerKey, claimed_at: datetime) -> bool:
        with self._lock:
            entry = (key.recipient_id, key.name)
            if entry in self.ledger:
                return False
            self.ledger[entry] = claimed_at
            return True

    def ledger_names(self) -> list[str]:
        return sorted(name for _, name in self.ledger)


class RecordingDispatcher:
    """Implements EmailDispatcher protocol by recording every message."""

    def __init__(self, succeed: bool = True) -> None:
        self.succeed = succeed
        self.messages: list[EmailMessage] = []
        self._lock = threading.Lock()

    def send(self, message: EmailMessage) -> bool:
        with self._lock:
            self.messages.append(message)
        return self.succeed

    def sent_to(self, email: str) -> list[EmailMessage]:
        return [message for message in self.messages if message.to == email]

    def last_code(self, email: str) -> str:
        """Most recent one-time code emailed to `email`."""
        for message in reversed(self.sent_to(email)):
            match = _CODE_PATTERN.search(message.html)
            if match:
                return match.group(1)
        raise AssertionError(f"No verification code was sent to {email}")
