"""
Retrying email dispatcher - Implements EmailDispatcher protocol.

Wraps an EmailTransport with the delivery policy:
- Malformed recipients fail immediately and are never retried
- Transient failures are retried up to `max_attempts` with a fixed backoff
- Permanent failures stop retrying
- The final outcome (sent/failed) is logged against recipient and subject

send() never raises, so a failed notification cannot fail the operation
that triggered it.
"""

import logging
import time
from collections.abc import Callable

from email_validator import EmailNotValidError, validate_email

from airena.domain.exceptions import DeliveryError, PermanentDeliveryError
from airena.domain.ports import EmailMessage, EmailTransport

logger = logging.getLogger(__name__)


class RetryingEmailDispatcher:
    """
    Implements EmailDispatcher protocol with bounded retry.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        transport: EmailTransport,
        max_attempts: int = 2,
        backoff_seconds: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._transport = transport
        self._max_attempts = max(1, max_attempts)
        self._backoff_seconds = backoff_seconds
        self._sleep = sleep

    def send(self, message: EmailMessage) -> bool:
        try:
            validate_email(message.to, check_deliverability=False)
        except EmailNotValidError as e:
            logger.error("Email failed to %s (%s): invalid recipient: %s", message.to, message.subject, e)
            return False

        last_error: DeliveryError | None = None
        for attempt in range(1, self._max_attempts + 1):
            try:
                self._transport.deliver(message.to, message.subject, message.html)
            except PermanentDeliveryError as e:
                last_error = e
                break
            except DeliveryError as e:
                last_error = e
                if attempt < self._max_attempts:
                    logger.warning(
                        "Email attempt %d/%d to %s failed: %s",
                        attempt,
                        self._max_attempts,
                        message.to,
                        e,
                    )
                    self._sleep(self._backoff_seconds)
            else:
                logger.info("Email sent to %s (%s)", message.to, message.subject)
                return True

        logger.error("Email failed to %s (%s): %s", message.to, message.subject, last_error)
        return False
