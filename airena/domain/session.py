"""
Session issuer - Two-step login.

Login is always two calls:

    login(email, password)        CREDENTIAL_CHECKED -> OTC_ISSUED
    complete_login(email, code)   OTC_ISSUED -> SESSION_ISSUED

login() never returns a session credential, whatever the role. A HOST
additionally needs administrator approval before complete_login() will
mint a credential.

Password checks always run bcrypt, against a dummy hash when the email
is unknown, so response time does not reveal whether an account exists.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

import bcrypt

from .exceptions import AuthenticationFailure, AuthorizationFailure
from .identity import MAX_PASSWORD_BYTES
from .otc import OtcService
from .ports import (
    Clock,
    Identity,
    IdentityRepository,
    IssuedSession,
    Role,
    SessionClaims,
    TokenSigner,
    utc_now,
)

logger = logging.getLogger(__name__)

# Pre-computed bcrypt hash for timing oracle prevention.
# Used when the email doesn't exist so password comparison always runs.
_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10)).decode()


@dataclass(frozen=True)
class LoginChallenge:
    """Result of a successful credential check: an OTC is now required."""

    email: str
    otc_expires_at: datetime


@dataclass(frozen=True)
class LoginResult:
    session: IssuedSession
    identity: Identity


@dataclass
class SessionIssuer:
    """Domain service converting a fully gated identity into a session credential."""

    repository: IdentityRepository
    otc_service: OtcService
    tokens: TokenSigner
    clock: Clock = utc_now

    def login(self, email: str, password: str) -> LoginChallenge:
        """
        Check credentials and issue a one-time code.

        Raises:
            AuthenticationFailure: If the email is unknown or the password is wrong
        """
        normalized_email = email.strip().lower()
        identity = self.repository.get_by_email(normalized_email)

        stored_hash = identity.password_hash if identity is not None else _DUMMY_BCRYPT_HASH
        candidate = password.encode()
        if len(candidate) > MAX_PASSWORD_BYTES:
            # Cannot match any stored hash; still pay the bcrypt cost
            bcrypt.checkpw(b"", stored_hash.encode())
            raise AuthenticationFailure("Invalid credentials")
        password_valid = bcrypt.checkpw(candidate, stored_hash.encode())

        if identity is None or not password_valid:
            raise AuthenticationFailure("Invalid credentials")

        expires_at = self.otc_service.issue(identity.id)
        return LoginChallenge(email=identity.email, otc_expires_at=expires_at)

    def complete_login(self, email: str, code: str) -> LoginResult:
        """
        Verify the login code and issue a session credential.

        A successful code also marks the email verified.

        Raises:
            AuthenticationFailure: If the email is unknown or the code is invalid
            AuthorizationFailure: If the identity is a HOST awaiting approval
        """
        identity = self.repository.get_by_email(email.strip().lower())
        if identity is None or not self.otc_service.verify(identity.id, code):
            raise AuthenticationFailure("Invalid or expired code")

        identity = self.repository.get_by_id(identity.id)
        if identity is None:
            raise AuthenticationFailure("Invalid or expired code")

        if identity.role == Role.HOST and not identity.host_approved:
            raise AuthorizationFailure("Host account is pending admin approval")

        self.repository.record_login(identity.id, self.clock())
        session = self.tokens.issue_session(identity)
        logger.info("Session issued for %s", identity.email)
        return LoginResult(session=session, identity=identity)

    def authenticate(self, token: str) -> SessionClaims:
        """Decode a bearer session credential."""
        return self.tokens.decode_session(token)
