"""Tests for Slack review channel helpers."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from slack_sdk.errors import SlackApiError
from structlog.testing import capture_logs

from order_relay.approvals import notifications
from order_relay.approvals.notifications import (
    DispatchError,
    PromptExpiredError,
    PromptReference,
    ReviewChannel,
)
from order_relay.orders import OrderSummary
from order_relay.slack_client import SlackClient


class DummyResponse(dict):
    """Minimal Slack response stub for error handling tests."""

    def __init__(self, error: str = "invalid_arguments", status_code: int = 400) -> None:
        super().__init__({"error": error})
        self.status_code = status_code

    @property
    def data(self) -> dict[str, str]:
        return dict(self)


class FailingWebClient:
    def __init__(self, error: Exception) -> None:
        self.error = error

    def chat_postMessage(self, **kwargs):
        raise self.error

    def chat_update(self, **kwargs):
        raise self.error

    def chat_postEphemeral(self, **kwargs):
        raise self.error


def _channel(error: Exception) -> ReviewChannel:
    return ReviewChannel(slack_client=SlackClient(client=FailingWebClient(error)), channel_id="C123")


def test_publish_prompt_logs_webhook_failure():
    error = SlackApiError("webhook error", DummyResponse())
    summary = OrderSummary(order_id=42, customer_email="a@b.com")

    with capture_logs() as logs:
        with pytest.raises(DispatchError):
            _channel(error).publish_prompt(summary, created_at=datetime.now(UTC))

    events = [entry for entry in logs if entry.get("event") == "webhook_failed"]
    assert events, "webhook_failed log was not emitted"

    event = events[0]
    assert event.get("order_id") == 42
    assert event.get("operation") == "publish_prompt"
    assert event.get("channel") == "C123"
    assert event.get("error") == "invalid_arguments"
    assert event.get("status_code") == 400


def test_publish_prompt_wraps_network_errors():
    summary = OrderSummary(order_id=1, customer_email="a@b.com")

    with pytest.raises(DispatchError):
        _channel(ConnectionResetError("reset")).publish_prompt(summary, created_at=datetime.now(UTC))


def test_publish_test_message_raises_dispatch_error():
    with pytest.raises(DispatchError):
        _channel(SlackApiError("nope", DummyResponse("not_in_channel"))).publish_test_message(
            sent_at=datetime.now(UTC)
        )


@pytest.mark.parametrize("error_code", sorted(notifications.EXPIRED_ERROR_CODES))
def test_close_prompt_reports_expired_messages(error_code):
    prompt = PromptReference(channel_id="C123", ts="1.0")

    with pytest.raises(PromptExpiredError):
        _channel(SlackApiError("gone", DummyResponse(error_code))).close_prompt(
            prompt, action="approve", decided_by="U1"
        )


def test_close_prompt_swallows_other_failures():
    prompt = PromptReference(channel_id="C123", ts="1.0")

    with capture_logs() as logs:
        _channel(SlackApiError("busy", DummyResponse("ratelimited", 429))).close_prompt(
            prompt, action="decline", decided_by=None
        )

    assert any(entry.get("operation") == "close_prompt" for entry in logs)


def test_acknowledge_returns_false_when_slack_refuses():
    channel = _channel(SlackApiError("no", DummyResponse("user_not_in_channel")))

    assert channel.acknowledge(channel_id="C123", user_id="U1", text="hi") is False
