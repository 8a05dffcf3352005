"""
Unit tests for RetryingEmailDispatcher.

Tests verify the delivery policy: bounded retry with backoff for
transient failures, no retry for permanent failures or malformed
recipients, and an outcome log line for every message.
"""

import logging
from unittest.mock import Mock

import pytest

from airena.adapters.smtp.dispatcher import RetryingEmailDispatcher
from airena.domain.exceptions import DeliveryError, PermanentDeliveryError
from airena.domain.ports import EmailDispatcher, EmailMessage

MESSAGE = EmailMessage(to="user@example.com", subject="Hello", html="<p>Hi</p>")


@pytest.fixture
def transport() -> Mock:
    return Mock()


@pytest.fixture
def sleep() -> Mock:
    return Mock()


@pytest.fixture
def dispatcher(transport: Mock, sleep: Mock) -> RetryingEmailDispatcher:
    return RetryingEmailDispatcher(transport, max_attempts=2, backoff_seconds=2.0, sleep=sleep)


class TestProtocol:
    def test_implements_email_dispatcher_protocol(self, dispatcher: RetryingEmailDispatcher) -> None:
        def accepts_dispatcher(d: EmailDispatcher) -> None:
            pass

        accepts_dispatcher(dispatcher)


class TestDelivery:
    """Tests for RetryingEmailDispatcher.send()."""

    def test_first_attempt_success(
        self,
        dispatcher: RetryingEmailDispatcher,
        transport: Mock,
        sleep: Mock,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level(logging.INFO):
            assert dispatcher.send(MESSAGE) is True

        transport.deliver.assert_called_once_with("user@example.com", "Hello", "<p>Hi</p>")
        sleep.assert_not_called()
        assert "Email sent to user@example.com (Hello)" in caplog.text

    def test_transient_failure_retried_after_backoff(
        self, dispatcher: RetryingEmailDispatcher, transport: Mock, sleep: Mock
    ) -> None:
        transport.deliver.side_effect = [DeliveryError("timeout"), None]

        assert dispatcher.send(MESSAGE) is True

        assert transport.deliver.call_count == 2
        sleep.assert_called_once_with(2.0)

    def test_gives_up_after_max_attempts(
        self,
        dispatcher: RetryingEmailDispatcher,
        transport: Mock,
        sleep: Mock,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        transport.deliver.side_effect = DeliveryError("timeout")

        with caplog.at_level(logging.WARNING):
            assert dispatcher.send(MESSAGE) is False

        assert transport.deliver.call_count == 2
        assert sleep.call_count == 1
        assert "Email attempt 1/2 to user@example.com failed" in caplog.text
        assert "Email failed to user@example.com (Hello): timeout" in caplog.text

    def test_permanent_failure_not_retried(
        self, dispatcher: RetryingEmailDispatcher, transport: Mock, sleep: Mock
    ) -> None:
        transport.deliver.side_effect = PermanentDeliveryError("mailbox does not exist")

        assert dispatcher.send(MESSAGE) is False

        transport.deliver.assert_called_once()
        sleep.assert_not_called()

    @pytest.mark.parametrize("recipient", ["not-an-email", "", "user@", "@example.com"])
    def test_invalid_recipient_never_attempted(
        self,
        dispatcher: RetryingEmailDispatcher,
        transport: Mock,
        caplog: pytest.LogCaptureFixture,
        recipient: str,
    ) -> None:
        with caplog.at_level(logging.ERROR):
            assert dispatcher.send(EmailMessage(to=recipient, subject="Hi", html="")) is False

        transport.deliver.assert_not_called()
        assert "invalid recipient" in caplog.text

    def test_attempts_configurable(self, transport: Mock, sleep: Mock) -> None:
        dispatcher = RetryingEmailDispatcher(transport, max_attempts=4, sleep=sleep)
        transport.deliver.side_effect = DeliveryError("timeout")

        dispatcher.send(MESSAGE)

        assert transport.deliver.call_count == 4
        assert sleep.call_count == 3

    def test_at_least_one_attempt(self, transport: Mock, sleep: Mock) -> None:
        dispatcher = RetryingEmailDispatcher(transport, max_attempts=0, sleep=sleep)
        dispatcher.send(MESSAGE)
        transport.deliver.assert_called_once()
