"""
Console email sender adapter - Implements EmailTransport protocol.

This module provides a console-based implementation of the domain's
email transport port, logging messages to stdout for development.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailTransport protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - verification codes end up in the logs.
    """

    def deliver(self, to: str, subject: str, html: str) -> None:
        """
        Log a message to console (simulates email delivery).

        In production, this is replaced with the Brevo adapter.
        Logged at INFO level to be visible in the server logs.

        Args:
            to: Recipient email address
            subject: Message subject
            html: Rendered HTML body
        """
        logger.info("[EMAIL] To: %s Subject: %s Body: %s", to, subject, html)
