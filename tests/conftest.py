"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- In-memory repositories, a recording email dispatcher and a fake clock
- Domain services wired to them
"""

import pytest

from airena.adapters.tokens.jwt_codec import JwtTokenCodec
from airena.domain.approval import ApprovalGate
from airena.domain.identity import IdentityService
from airena.domain.otc import OtcService
from airena.domain.session import SessionIssuer
from tests.fakes import (
    ADMIN_EMAIL,
    PUBLIC_BASE_URL,
    TEST_BCRYPT_COST,
    TEST_SECRET,
    FakeClock,
    InMemoryIdentityRepository,
    InMemoryReminderRepository,
    RecordingDispatcher,
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def identity_repository() -> InMemoryIdentityRepository:
    return InMemoryIdentityRepository()


@pytest.fixture
def reminder_repository() -> InMemoryReminderRepository:
    return InMemoryReminderRepository()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def tokens() -> JwtTokenCodec:
    return JwtTokenCodec(secret=TEST_SECRET)


@pytest.fixture
def otc_service(
    identity_repository: InMemoryIdentityRepository,
    dispatcher: RecordingDispatcher,
    clock: FakeClock,
) -> OtcService:
    return OtcService(
        repository=identity_repository,
        dispatcher=dispatcher,
        bcrypt_cost=TEST_BCRYPT_COST,
        clock=clock,
    )


@pytest.fixture
def approval_gate(
    identity_repository: InMemoryIdentityRepository,
    otc_service: OtcService,
    dispatcher: RecordingDispatcher,
    tokens: JwtTokenCodec,
    clock: FakeClock,
) -> ApprovalGate:
    return ApprovalGate(
        repository=identity_repository,
        otc_service=otc_service,
        dispatcher=dispatcher,
        tokens=tokens,
        admin_email=ADMIN_EMAIL,
        public_base_url=PUBLIC_BASE_URL,
        clock=clock,
    )


@pytest.fixture
def identity_service(
    identity_repository: InMemoryIdentityRepository,
    otc_service: OtcService,
    approval_gate: ApprovalGate,
) -> IdentityService:
    return IdentityService(
        repository=identity_repository,
        otc_service=otc_service,
        approval_gate=approval_gate,
        admin_email=ADMIN_EMAIL,
        bcrypt_cost=TEST_BCRYPT_COST,
    )


@pytest.fixture
def session_issuer(
    identity_repository: InMemoryIdentityRepository,
    otc_service: OtcService,
    tokens: JwtTokenCodec,
    clock: FakeClock,
) -> SessionIssuer:
    return SessionIssuer(
        repository=identity_repository,
        otc_service=otc_service,
        tokens=tokens,
        clock=clock,
    )
