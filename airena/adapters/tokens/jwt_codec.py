"""
JWT token adapter - Implements TokenSigner protocol.

Signs session credentials and host approval links with PyJWT (HS256).
The two token kinds are told apart by a `typ` claim, so an approval link
can never be used as a session credential or the other way round.
"""

import logging
from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt

from airena.domain.exceptions import AuthenticationFailure, AuthorizationFailure
from airena.domain.ports import ApprovalAction, Identity, IssuedSession, Role, SessionClaims

logger = logging.getLogger(__name__)

MIN_SECRET_LENGTH = 32
SESSION_TYPE = "session"
APPROVAL_TYPE = "approval"


class JwtTokenCodec:
    """
    Implements TokenSigner protocol via PyJWT.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        secret: str,
        session_ttl: timedelta = timedelta(days=7),
        approval_ttl: timedelta = timedelta(hours=72),
        algorithm: str = "HS256",
    ) -> None:
        if len(secret) < MIN_SECRET_LENGTH:
            # Short keys are accepted; only warned about
            logger.warning(
                "Session signing key is shorter than %d characters", MIN_SECRET_LENGTH
            )
        self._secret = secret
        self._session_ttl = session_ttl
        self._approval_ttl = approval_ttl
        self._algorithm = algorithm

    def issue_session(self, identity: Identity) -> IssuedSession:
        issued_at = datetime.now(timezone.utc)
        expires_at = issued_at + self._session_ttl
        payload = {
            "sub": str(identity.id),
            "email": identity.email,
            "role": identity.role.value,
            "typ": SESSION_TYPE,
            "iat": issued_at,
            "exp": expires_at,
        }
        token = jwt.encode(payload, self._secret, algorithm=self._algorithm)
        return IssuedSession(token=token, expires_at=expires_at)

    def decode_session(self, token: str) -> SessionClaims:
        try:
            payload = self._decode(token)
            if payload.get("typ") != SESSION_TYPE:
                raise AuthenticationFailure("Not a session credential")
            return SessionClaims(
                subject=UUID(payload["sub"]),
                email=payload["email"],
                role=Role(payload["role"]),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (jwt.PyJWTError, KeyError, ValueError):
            raise AuthenticationFailure("Invalid or expired session") from None

    def issue_approval_token(self, identity_id: UUID, action: ApprovalAction) -> str:
        issued_at = datetime.now(timezone.utc)
        payload = {
            "sub": str(identity_id),
            "act": action.value,
            "typ": APPROVAL_TYPE,
            "iat": issued_at,
            "exp": issued_at + self._approval_ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify_approval_token(self, token: str, identity_id: UUID, action: ApprovalAction) -> None:
        try:
            payload = self._decode(token)
        except jwt.PyJWTError:
            raise AuthorizationFailure("Approval link is invalid or expired") from None

        if (
            payload.get("typ") != APPROVAL_TYPE
            or payload.get("sub") != str(identity_id)
            or payload.get("act") != action.value
        ):
            raise AuthorizationFailure("Approval link is invalid or expired")

    def _decode(self, token: str) -> dict:
        return jwt.decode(
            token,
            self._secret,
            algorithms=[self._algorithm],
            options={"require": ["exp", "sub", "typ"]},
        )
