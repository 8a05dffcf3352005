"""
Domain layer - Pure business logic with zero framework imports.

This package contains the identity lifecycle (registration, one-time codes,
host approval, two-step login) and the reminder sweeps. It defines its own
port interfaces for infrastructure abstraction, ensuring true hexagonal
architecture decoupling.
"""

from .approval import ApprovalGate
from .exceptions import (
    AuthenticationFailure,
    AuthorizationFailure,
    DeliveryError,
    EmailAlreadyRegistered,
    IdentityError,
    IdentityNotFound,
    InvalidPassword,
    PermanentDeliveryError,
)
from .identity import IdentityService
from .otc import OtcService
from .ports import (
    ApprovalAction,
    EmailDispatcher,
    EmailMessage,
    EmailTransport,
    Identity,
    IdentityRepository,
    LedgerKey,
    LifecycleState,
    ReminderClass,
    ReminderRepository,
    Role,
    TokenSigner,
)
from .reminders import ReminderScheduler, SweepReport
from .session import SessionIssuer

__all__ = [
    "ApprovalAction",
    "ApprovalGate",
    "AuthenticationFailure",
    "AuthorizationFailure",
    "DeliveryError",
    "EmailAlreadyRegistered",
    "EmailDispatcher",
    "EmailMessage",
    "EmailTransport",
    "Identity",
    "IdentityError",
    "IdentityNotFound",
    "IdentityRepository",
    "IdentityService",
    "InvalidPassword",
    "LedgerKey",
    "LifecycleState",
    "OtcService",
    "PermanentDeliveryError",
    "ReminderClass",
    "ReminderRepository",
    "ReminderScheduler",
    "Role",
    "SessionIssuer",
    "SweepReport",
    "TokenSigner",
]
