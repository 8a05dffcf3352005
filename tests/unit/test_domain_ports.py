"""
Unit tests for domain ports and exceptions.

Tests verify:
- Lifecycle state derivation from identity flags
- Ledger key construction rules
- Exception hierarchy
- Domain purity (zero framework imports)
"""

from datetime import date
from enum import Enum
from pathlib import Path
from uuid import uuid4

import pytest

from airena.domain.exceptions import (
    AuthenticationFailure,
    AuthorizationFailure,
    DeliveryError,
    EmailAlreadyRegistered,
    IdentityError,
    IdentityNotFound,
    PermanentDeliveryError,
)
from airena.domain.ports import (
    ApprovalAction,
    IdentityRepository,
    LedgerKey,
    LifecycleState,
    ReminderClass,
    Role,
)
from tests.fakes import InMemoryIdentityRepository, make_identity

DOMAIN_DIR = Path(__file__).resolve().parents[2] / "airena" / "domain"


class TestLifecycleState:
    """Tests for Identity.lifecycle_state derivation."""

    def test_new_identity_is_unverified(self) -> None:
        identity = make_identity()
        assert identity.lifecycle_state == LifecycleState.UNVERIFIED
        assert identity.is_active is False

    def test_verified_participant_is_email_verified(self) -> None:
        identity = make_identity(email_verified=True)
        assert identity.lifecycle_state == LifecycleState.EMAIL_VERIFIED
        assert identity.is_active is True

    def test_verified_admin_is_active(self) -> None:
        identity = make_identity(role=Role.ADMIN, email_verified=True)
        assert identity.is_active is True

    def test_verified_unapproved_host_is_pending(self) -> None:
        identity = make_identity(role=Role.HOST, email_verified=True)
        assert identity.lifecycle_state == LifecycleState.PENDING_APPROVAL
        assert identity.is_active is False

    def test_verified_approved_host_is_approved(self) -> None:
        identity = make_identity(role=Role.HOST, email_verified=True, host_approved=True)
        assert identity.lifecycle_state == LifecycleState.APPROVED
        assert identity.is_active is True

    def test_approved_host_with_unverified_email_is_unverified(self) -> None:
        """Approval can precede verification; the email step still gates."""
        identity = make_identity(role=Role.HOST, host_approved=True)
        assert identity.lifecycle_state == LifecycleState.UNVERIFIED

    def test_name_joins_first_and_last(self) -> None:
        identity = make_identity(first_name="Ada", last_name="Lovelace")
        assert identity.name == "Ada Lovelace"


class TestLedgerKey:
    """Tests for LedgerKey construction and naming."""

    def test_daily_key_includes_date(self) -> None:
        event_id = uuid4()
        key = LedgerKey(uuid4(), event_id, ReminderClass.DAILY, date(2026, 3, 10))
        assert key.name == f"REMINDER_{event_id}_DAILY_2026-03-10"

    def test_final_day_key_has_no_date(self) -> None:
        event_id = uuid4()
        key = LedgerKey(uuid4(), event_id, ReminderClass.FINAL_DAY)
        assert key.name == f"REMINDER_{event_id}_FINAL_DAY"

    def test_one_hour_key_has_no_date(self) -> None:
        event_id = uuid4()
        key = LedgerKey(uuid4(), event_id, ReminderClass.ONE_HOUR)
        assert key.name == f"REMINDER_{event_id}_ONE_HOUR"

    def test_daily_key_without_date_rejected(self) -> None:
        with pytest.raises(ValueError):
            LedgerKey(uuid4(), uuid4(), ReminderClass.DAILY)

    def test_non_daily_key_with_date_rejected(self) -> None:
        with pytest.raises(ValueError):
            LedgerKey(uuid4(), uuid4(), ReminderClass.ONE_HOUR, date(2026, 3, 10))

    def test_keys_are_hashable_values(self) -> None:
        recipient_id, event_id = uuid4(), uuid4()
        first = LedgerKey(recipient_id, event_id, ReminderClass.FINAL_DAY)
        second = LedgerKey(recipient_id, event_id, ReminderClass.FINAL_DAY)
        assert first == second
        assert len({first, second}) == 1


class TestEnums:
    """Tests for domain enums."""

    def test_roles_are_string_enums(self) -> None:
        assert issubclass(Role, Enum)
        assert Role("HOST") is Role.HOST
        assert {role.value for role in Role} == {"PARTICIPANT", "HOST", "ORGANIZER", "ADMIN"}

    def test_approval_actions_match_link_paths(self) -> None:
        assert ApprovalAction.APPROVE.value == "approve-host"
        assert ApprovalAction.REJECT.value == "reject-host"

    def test_no_rejected_lifecycle_state(self) -> None:
        """Rejection deletes the identity instead of parking it in a state."""
        assert "REJECTED" not in {state.value for state in LifecycleState}


class TestExceptions:
    """Tests for the exception hierarchy."""

    @pytest.mark.parametrize(
        "exception_class",
        [AuthenticationFailure, AuthorizationFailure, IdentityNotFound, EmailAlreadyRegistered],
    )
    def test_identity_errors_share_base(self, exception_class: type) -> None:
        assert issubclass(exception_class, IdentityError)

    def test_permanent_delivery_error_is_delivery_error(self) -> None:
        assert issubclass(PermanentDeliveryError, DeliveryError)
        assert not issubclass(DeliveryError, IdentityError)

    def test_exception_carries_message(self) -> None:
        error = AuthorizationFailure("User is not a host")
        assert str(error) == "User is not a host"


class TestProtocols:
    """Tests for structural subtyping of the ports."""

    def test_in_memory_repository_satisfies_protocol(self) -> None:
        def accepts_repository(repository: IdentityRepository) -> None:
            pass

        accepts_repository(InMemoryIdentityRepository())


class TestDomainPurity:
    """Domain layer has zero framework imports."""

    @pytest.mark.parametrize(
        "forbidden",
        ["fastapi", "pydantic", "psycopg", "jwt", "sib_api_v3_sdk"],
    )
    def test_no_framework_imports_in_domain(self, forbidden: str) -> None:
        for source in DOMAIN_DIR.glob("*.py"):
            text = source.read_text()
            assert f"import {forbidden}" not in text, f"{forbidden} imported in {source.name}"
            assert f"from {forbidden}" not in text, f"{forbidden} imported in {source.name}"
