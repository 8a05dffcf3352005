"""
One-time code (OTC) service.

Issues, stores and verifies the six-digit codes that prove control of an
email address. Only a bcrypt hash of the code is persisted, together with
an expiry. Each identity has at most one pending code: issuing a new one
overwrites the previous hash, so earlier codes become unusable.

Verification is single-use. The final step is a compare-and-swap on the
stored hash (see IdentityRepository.consume_otc), so two concurrent
verifications of the same code cannot both succeed.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

import bcrypt

from .exceptions import IdentityNotFound
from .messages import otc_message
from .ports import Clock, EmailDispatcher, IdentityRepository, utc_now

logger = logging.getLogger(__name__)

OTC_MIN = 100000
OTC_MAX = 999999


@dataclass(frozen=True)
class PreparedOtc:
    """A freshly generated code together with what gets persisted for it."""

    code: str
    code_hash: str
    expires_at: datetime


@dataclass
class OtcService:
    """Domain service for one-time codes bound to an identity."""

    repository: IdentityRepository
    dispatcher: EmailDispatcher
    ttl: timedelta = timedelta(minutes=10)
    bcrypt_cost: int = 10
    clock: Clock = utc_now

    def issue(self, identity_id: UUID) -> datetime:
        """
        Issue a new code for an identity and email it.

        Any previously issued, unconsumed code is invalidated. A delivery
        failure is logged and does not undo the issuance.

        Args:
            identity_id: Identity to bind the code to

        Returns:
            Expiry of the new code

        Raises:
            IdentityNotFound: If the identity does not exist
        """
        identity = self.repository.get_by_id(identity_id)
        if identity is None:
            raise IdentityNotFound(str(identity_id))

        prepared = self.prepare()
        if not self.repository.store_otc(identity.id, prepared.code_hash, prepared.expires_at):
            raise IdentityNotFound(str(identity_id))

        self.deliver(identity.email, prepared)
        return prepared.expires_at

    def verify(self, identity_id: UUID, code: str) -> bool:
        """
        Verify a submitted code and consume it on success.

        - No pending code: False
        - Expired code: False, and the stale code is cleared
        - Mismatch: False, the code stays pending
        - Match: email marked verified, code cleared, True

        Args:
            identity_id: Identity the code was issued for
            code: Code submitted by the user

        Returns:
            True if the code matched and this call consumed it
        """
        identity = self.repository.get_by_id(identity_id)
        if identity is None or identity.otc_hash is None or identity.otc_expires_at is None:
            return False

        if self.clock() > identity.otc_expires_at:
            # Lazy cleanup of the stale code
            self.repository.clear_otc(identity.id, identity.otc_hash)
            return False

        if not bcrypt.checkpw(code.encode(), identity.otc_hash.encode()):
            return False

        return self.repository.consume_otc(identity.id, identity.otc_hash)

    def prepare(self) -> PreparedOtc:
        """Generate a code, its hash and its expiry without persisting anything."""
        code = self._generate_code()
        code_hash = bcrypt.hashpw(code.encode(), bcrypt.gensalt(rounds=self.bcrypt_cost)).decode()
        return PreparedOtc(code=code, code_hash=code_hash, expires_at=self.clock() + self.ttl)

    def deliver(self, email: str, prepared: PreparedOtc) -> bool:
        """Email a prepared code. Returns False (and logs) if delivery failed."""
        message = otc_message(email, prepared.code, int(self.ttl.total_seconds() // 60))
        delivered = self.dispatcher.send(message)
        if not delivered:
            logger.error("Verification code could not be delivered to %s", email)
        return delivered

    def _generate_code(self) -> str:
        """
        Uniformly sample a six-digit code from [100000, 999999].

        Uses the secrets module for cryptographic randomness.
        """
        return str(OTC_MIN + secrets.randbelow(OTC_MAX - OTC_MIN + 1))
