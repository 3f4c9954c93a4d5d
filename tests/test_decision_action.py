"""Tests for the Slack decision button handler."""

from datetime import UTC, datetime
import logging
from pathlib import Path
import sys

import pytest
from slack_sdk.errors import SlackApiError

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import app as app_module  # noqa: E402
from order_relay.approvals import (  # noqa: E402
    ALREADY_RESOLVED,
    EXPIRED,
    FAILED,
    SENT,
    ApprovalWorkflow,
    NotificationTemplates,
    ResolvedPromptLedger,
    ReviewChannel,
    build_review_message,
)
from order_relay.mailer import MailDeliveryError  # noqa: E402
from order_relay.orders import OrderSummary  # noqa: E402
from order_relay.slack_client import SlackClient  # noqa: E402

NOW = datetime(2024, 5, 1, tzinfo=UTC)


class DummyResponse(dict):
    def __init__(self, error: str) -> None:
        super().__init__({"ok": False, "error": error})
        self.status_code = 200


class DummySlackWebClient:
    def __init__(self, update_error=None):
        self.update_calls = []
        self.ephemeral_calls = []
        self.update_error = update_error

    def chat_update(self, **kwargs):
        if self.update_error is not None:
            raise self.update_error
        self.update_calls.append(kwargs)
        return {"ok": True}

    def chat_postEphemeral(self, **kwargs):
        self.ephemeral_calls.append(kwargs)
        return {"ok": True}


class DummyMailer:
    def __init__(self, error=None):
        self.sent = []
        self.error = error

    def send(self, *, recipient, subject, body):
        if self.error is not None:
            raise self.error
        self.sent.append({"recipient": recipient, "subject": subject, "body": body})


@pytest.fixture
def logger():
    return logging.getLogger(__name__)


def _workflow(web_client, mailer):
    return ApprovalWorkflow(
        channel=ReviewChannel(slack_client=SlackClient(client=web_client), channel_id="CREVIEW"),
        mailer=mailer,
        templates=NotificationTemplates(store_name="ArcMC", support_url="https://support.example"),
        ledger=ResolvedPromptLedger(),
        clock=lambda: NOW,
    )


def _body(value, *, action_type="button", ts="1700000000.000100"):
    summary = OrderSummary(order_id=42, customer_email="a@b.com", product_description="Rank X")
    message = build_review_message(summary=summary, created_at=NOW)
    return {
        "type": "block_actions",
        "user": {"id": "U123"},
        "channel": {"id": "CREVIEW"},
        "container": {"type": "message", "channel_id": "CREVIEW", "message_ts": ts},
        "message": {"ts": ts, "blocks": message["blocks"]},
        "actions": [{"type": action_type, "action_id": "order_approve", "value": value}],
    }


def _button_value(action):
    summary = OrderSummary(order_id=42, customer_email="a@b.com")
    message = build_review_message(summary=summary, created_at=NOW)
    approve, decline = message["blocks"][-1]["elements"]
    return approve["value"] if action == "approve" else decline["value"]


def _ack_recorder():
    calls = []

    def ack(payload=None):
        calls.append(payload)

    return ack, calls


def test_legacy_accept_sends_one_approve_email(logger):
    web_client = DummySlackWebClient()
    mailer = DummyMailer()
    ack, ack_calls = _ack_recorder()

    result = app_module._handle_decision_action(
        ack=ack,
        body=_body("accept_a@b.com"),
        logger=logger,
        workflow=_workflow(web_client, mailer),
    )

    assert ack_calls == [None]
    assert result.outcome == SENT
    assert [mail["recipient"] for mail in mailer.sent] == ["a@b.com"]
    assert "Congratulations" in mailer.sent[0]["body"]
    assert web_client.ephemeral_calls == [
        {"channel": "CREVIEW", "user": "U123", "text": ":incoming_envelope: Email sent to a@b.com."}
    ]
    assert all(block["type"] != "actions" for block in web_client.update_calls[0]["blocks"])


def test_decline_button_sends_decline_email(logger):
    mailer = DummyMailer()
    ack, _ = _ack_recorder()

    app_module._handle_decision_action(
        ack=ack,
        body=_body(_button_value("decline")),
        logger=logger,
        workflow=_workflow(DummySlackWebClient(), mailer),
    )

    assert "Order Declined" in mailer.sent[0]["body"]


def test_mail_failure_is_acknowledged_without_raising(logger):
    web_client = DummySlackWebClient()
    mailer = DummyMailer(error=MailDeliveryError("relay unreachable"))
    ack, _ = _ack_recorder()

    result = app_module._handle_decision_action(
        ack=ack,
        body=_body(_button_value("approve")),
        logger=logger,
        workflow=_workflow(web_client, mailer),
    )

    assert result.outcome == FAILED
    assert web_client.ephemeral_calls[0]["text"] == ":warning: Failed to send email to a@b.com."


def test_repeated_click_sends_single_email(logger):
    web_client = DummySlackWebClient()
    mailer = DummyMailer()
    workflow = _workflow(web_client, mailer)
    ack, _ = _ack_recorder()
    body = _body(_button_value("approve"))

    first = app_module._handle_decision_action(ack=ack, body=body, logger=logger, workflow=workflow)
    second = app_module._handle_decision_action(ack=ack, body=body, logger=logger, workflow=workflow)

    assert (first.outcome, second.outcome) == (SENT, ALREADY_RESOLVED)
    assert len(mailer.sent) == 1
    assert "already been resolved" in web_client.ephemeral_calls[1]["text"]


def test_expired_prompt_is_reported_distinctly(logger):
    web_client = DummySlackWebClient(update_error=SlackApiError("gone", DummyResponse("message_not_found")))
    mailer = DummyMailer()
    ack, _ = _ack_recorder()

    result = app_module._handle_decision_action(
        ack=ack,
        body=_body(_button_value("approve")),
        logger=logger,
        workflow=_workflow(web_client, mailer),
    )

    assert result.outcome == EXPIRED
    assert mailer.sent == []
    assert "expired" in web_client.ephemeral_calls[0]["text"]


def test_invalid_value_is_acknowledged(logger):
    web_client = DummySlackWebClient()
    mailer = DummyMailer()
    ack, ack_calls = _ack_recorder()

    result = app_module._handle_decision_action(
        ack=ack,
        body=_body("not-a-decision"),
        logger=logger,
        workflow=_workflow(web_client, mailer),
    )

    assert result is None
    assert ack_calls == [None]
    assert mailer.sent == []
    assert "could not be read" in web_client.ephemeral_calls[0]["text"]


def test_non_button_actions_are_ignored(logger):
    web_client = DummySlackWebClient()
    mailer = DummyMailer()
    ack, _ = _ack_recorder()

    result = app_module._handle_decision_action(
        ack=ack,
        body=_body(_button_value("approve"), action_type="static_select"),
        logger=logger,
        workflow=_workflow(web_client, mailer),
    )

    assert result is None
    assert mailer.sent == []
    assert web_client.ephemeral_calls == []
