"""
Brevo email sender adapter - Implements EmailTransport protocol.

Sends transactional email through the Brevo (Sendinblue) API client.
Provider errors are translated into the domain's delivery errors:
client errors other than rate limiting are permanent, everything else
is transient.
"""

import logging

import sib_api_v3_sdk
from sib_api_v3_sdk.rest import ApiException

from airena.domain.exceptions import DeliveryError, PermanentDeliveryError

logger = logging.getLogger(__name__)


class BrevoEmailSender:
    """
    Implements EmailTransport protocol via the Brevo transactional email API.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, api_key: str, sender_email: str, sender_name: str) -> None:
        configuration = sib_api_v3_sdk.Configuration()
        configuration.api_key["api-key"] = api_key
        self._api = sib_api_v3_sdk.TransactionalEmailsApi(sib_api_v3_sdk.ApiClient(configuration))
        self._sender = {"name": sender_name, "email": sender_email}

    def deliver(self, to: str, subject: str, html: str) -> None:
        message = sib_api_v3_sdk.SendSmtpEmail(
            to=[{"email": to}],
            sender=self._sender,
            subject=subject,
            html_content=html,
        )
        try:
            response = self._api.send_transac_email(message)
        except ApiException as e:
            if e.status is not None and 400 <= e.status < 500 and e.status != 429:
                raise PermanentDeliveryError(f"Brevo rejected message ({e.status}): {e.reason}") from e
            raise DeliveryError(f"Brevo request failed ({e.status}): {e.reason}") from e
        except Exception as e:
            raise DeliveryError(f"Brevo request failed: {e}") from e

        logger.debug("Brevo accepted message to %s: %s", to, response)
