"""Application entry point for the order approval relay."""

from __future__ import annotations

import sys
from datetime import UTC, datetime
from typing import Any, Dict
from uuid import uuid4

from flask import Flask, jsonify, request
from slack_bolt import App as SlackApp
from slack_bolt.adapter.flask import SlackRequestHandler
from slack_sdk import WebClient
import structlog
from structlog.contextvars import bind_contextvars, unbind_contextvars
from werkzeug.exceptions import HTTPException

from order_relay.approvals import (
    ALREADY_RESOLVED,
    APPROVE_ACTION_ID,
    DECLINE_ACTION_ID,
    EXPIRED,
    SENT,
    ApprovalWorkflow,
    DispatchError,
    InvalidDecisionError,
    NotificationResult,
    NotificationTemplates,
    PromptReference,
    ResolvedPromptLedger,
    ReviewChannel,
    parse_decision_value,
)
from order_relay.config import AppSettings, get_settings
from order_relay.logging_config import configure_logging
from order_relay.mailer import SmtpMailer
from order_relay.orders import (
    CommerceClient,
    CommerceFetchError,
    OrderValidationError,
    normalize_order,
)
from order_relay.security import (
    WEBHOOK_SECRET_HEADER,
    WEBHOOK_SECRET_QUERY_PARAM,
    is_authorised_webhook,
)
from order_relay.slack_client import SlackClient

_ACKNOWLEDGMENTS = {
    SENT: ":incoming_envelope: Email sent to {email}.",
    ALREADY_RESOLVED: "This order has already been resolved. No further email was sent.",
    EXPIRED: ":hourglass: This review prompt has expired. Please contact support.",
}
_FAILED_ACKNOWLEDGMENT = ":warning: Failed to send email to {email}."


def _create_bolt_app(settings: AppSettings) -> SlackApp:
    """Initialise the Slack Bolt application using validated settings."""

    web_client = WebClient(
        token=settings.bot_token,
        timeout=max(1, int(settings.http_timeout_seconds)),
    )
    return SlackApp(
        client=web_client,
        signing_secret=settings.signing_secret,
        token_verification_enabled=False,
    )


def _build_workflow(settings: AppSettings, client: WebClient) -> ApprovalWorkflow:
    channel = ReviewChannel(
        slack_client=SlackClient(client=client),
        channel_id=settings.review_channel_id,
    )
    mailer = SmtpMailer(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.email_user,
        password=settings.email_password,
        sender=settings.sender_address,
        timeout=settings.http_timeout_seconds,
    )
    return ApprovalWorkflow(
        channel=channel,
        mailer=mailer,
        templates=NotificationTemplates(
            store_name=settings.store_name,
            support_url=settings.support_url,
        ),
        ledger=ResolvedPromptLedger(capacity=settings.resolved_prompt_capacity),
    )


def _build_commerce_client(settings: AppSettings) -> CommerceClient | None:
    if not settings.commerce_enabled:
        return None
    return CommerceClient(
        base_url=settings.commerce_api_url,
        consumer_key=settings.commerce_consumer_key,
        consumer_secret=settings.commerce_consumer_secret,
        timeout=settings.http_timeout_seconds,
    )


def _register_error_handlers(flask_app: Flask) -> None:
    """Register a JSON error handler that attaches a trace identifier."""

    @flask_app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):  # type: ignore[override]
        if isinstance(error, HTTPException):
            return error

        trace_id = str(uuid4())
        flask_app.logger.exception(
            "Unhandled application error", extra={"trace_id": trace_id}, exc_info=error
        )
        response = jsonify({"error": "internal_server_error", "trace_id": trace_id})
        response.status_code = 500
        return response


def _request_payload() -> Any:
    payload = request.get_json(silent=True)
    if payload is not None:
        return payload
    if request.form:
        return request.form.to_dict()
    return {}


def _request_is_authorised(settings: AppSettings) -> bool:
    provided = request.headers.get(WEBHOOK_SECRET_HEADER) or request.args.get(WEBHOOK_SECRET_QUERY_PARAM)
    return is_authorised_webhook(expected_secret=settings.webhook_secret, provided_secret=provided)


def _handle_order_webhook(
    *,
    payload: Any,
    workflow: ApprovalWorkflow,
    commerce_client: CommerceClient | None,
) -> tuple[str, int]:
    trace_id = str(uuid4())
    bind_contextvars(trace_id=trace_id)
    log = structlog.get_logger().bind(trace_id=trace_id)
    try:
        keys = sorted(payload.keys()) if isinstance(payload, dict) else []
        log.info("webhook_received", payload_keys=keys)

        try:
            summary = normalize_order(payload, commerce_client=commerce_client)
        except OrderValidationError as exc:
            log.warning("order_rejected", reason=exc.reason, error=str(exc))
            return str(exc), 400
        except CommerceFetchError as exc:
            log.error("order_fetch_failed", error=str(exc))
            return "Failed to fetch order details.", 500

        log = log.bind(order_id=summary.order_id)
        try:
            workflow.present(summary)
        except DispatchError as exc:
            log.error("order_dispatch_failed", error=str(exc))
            return "Failed to notify the review channel.", 500

        log.info("webhook_handled", recipient=summary.customer_email)
        return "Webhook received", 200
    finally:
        unbind_contextvars("trace_id")


def _handle_test_webhook(*, workflow: ApprovalWorkflow):
    trace_id = str(uuid4())
    bind_contextvars(trace_id=trace_id)
    log = structlog.get_logger().bind(trace_id=trace_id)
    try:
        try:
            workflow.send_test_message()
        except DispatchError as exc:
            log.error("test_webhook_failed", error=str(exc))
            return jsonify({"success": False, "message": "Test webhook failed"}), 500
        log.info("test_webhook_sent")
        return jsonify({"success": True, "message": "Test webhook sent to Slack successfully"}), 200
    finally:
        unbind_contextvars("trace_id")


def _extract_prompt_reference(body: Dict[str, Any]) -> PromptReference | None:
    container = body.get("container") or {}
    message = body.get("message") or {}
    channel_id = container.get("channel_id") or (body.get("channel") or {}).get("id")
    ts = container.get("message_ts") or message.get("ts")
    if not channel_id or not ts:
        return None
    blocks = tuple(block for block in message.get("blocks") or [] if isinstance(block, dict))
    return PromptReference(channel_id=channel_id, ts=ts, blocks=blocks)


def _acknowledgment_text(result: NotificationResult) -> str:
    template = _ACKNOWLEDGMENTS.get(result.outcome, _FAILED_ACKNOWLEDGMENT)
    return template.format(email=result.recipient)


def _handle_decision_action(ack, body, logger, workflow: ApprovalWorkflow) -> NotificationResult | None:
    ack()
    trace_id = str(uuid4())
    bind_contextvars(trace_id=trace_id)
    log = structlog.get_logger().bind(trace_id=trace_id)
    try:
        user_id = (body.get("user") or {}).get("id")
        channel_id = (body.get("channel") or {}).get("id") or (body.get("container") or {}).get("channel_id")
        log = log.bind(user_id=user_id, channel=channel_id)

        actions = body.get("actions") or []
        if not actions or actions[0].get("type", "button") != "button":
            log.info("decision_ignored", reason="not_a_button")
            return None

        try:
            decision = parse_decision_value(actions[0].get("value"))
        except InvalidDecisionError as exc:
            log.warning("invalid_decision_payload", error=str(exc))
            logger.warning("Received an undecodable decision payload", extra={"user_id": user_id})
            if channel_id and user_id:
                workflow.channel.acknowledge(
                    channel_id=channel_id,
                    user_id=user_id,
                    text="This decision could not be read. Please contact support.",
                )
            return None

        log.info("decision_received", action=decision.action, order_id=decision.order_id)
        result = workflow.resolve(
            decision,
            prompt=_extract_prompt_reference(body),
            decided_by=user_id,
        )

        if channel_id and user_id:
            workflow.channel.acknowledge(
                channel_id=channel_id,
                user_id=user_id,
                text=_acknowledgment_text(result),
            )
        else:
            log.warning("acknowledgment_skipped", outcome=result.outcome)
        return result
    finally:
        unbind_contextvars("trace_id")


def _register_action_handlers(bolt_app: SlackApp, workflow: ApprovalWorkflow) -> None:
    @bolt_app.action(APPROVE_ACTION_ID)
    def handle_approve(ack, body, logger):
        _handle_decision_action(ack=ack, body=body, logger=logger, workflow=workflow)

    @bolt_app.action(DECLINE_ACTION_ID)
    def handle_decline(ack, body, logger):
        _handle_decision_action(ack=ack, body=body, logger=logger, workflow=workflow)


def create_app(
    settings: AppSettings | None = None,
    *,
    workflow: ApprovalWorkflow | None = None,
    commerce_client: CommerceClient | None = None,
) -> Flask:
    """Create and configure the Flask application."""

    configure_logging()

    settings = settings or get_settings()
    bolt_app = _create_bolt_app(settings)
    workflow = workflow or _build_workflow(settings, bolt_app.client)
    commerce_client = commerce_client or _build_commerce_client(settings)
    handler = SlackRequestHandler(bolt_app)

    flask_app = Flask(__name__)
    flask_app.logger.setLevel("INFO")
    flask_app.extensions["order_relay"] = {
        "workflow": workflow,
        "commerce_client": commerce_client,
    }

    _register_error_handlers(flask_app)
    _register_action_handlers(bolt_app, workflow)

    @flask_app.route("/", methods=["GET"])
    def index():
        return "Order approval relay is running.", 200

    @flask_app.route("/webhook", methods=["POST"])
    def order_webhook():
        if not _request_is_authorised(settings):
            structlog.get_logger().warning("webhook_unauthorised", path=request.path)
            return "Unauthorized", 401
        return _handle_order_webhook(
            payload=_request_payload(),
            workflow=workflow,
            commerce_client=commerce_client,
        )

    @flask_app.route("/test-webhook", methods=["POST"])
    def test_webhook():
        if not _request_is_authorised(settings):
            structlog.get_logger().warning("webhook_unauthorised", path=request.path)
            return "Unauthorized", 401
        return _handle_test_webhook(workflow=workflow)

    @flask_app.route("/slack/events", methods=["POST"])
    def slack_events():
        return handler.handle(request)

    @flask_app.route("/health", methods=["GET"])
    def health():
        connected = workflow.channel.is_connected()
        return jsonify(
            {
                "status": "healthy",
                "timestamp": datetime.now(UTC).isoformat(),
                "bot_status": "connected" if connected else "disconnected",
            }
        ), 200

    return flask_app


def main() -> int:
    configure_logging()
    try:
        settings = get_settings()
    except RuntimeError as exc:
        structlog.get_logger().error("configuration_invalid", error=str(exc))
        return 1

    application = create_app(settings)
    structlog.get_logger().info("server_starting", port=settings.port)
    application.run(host="0.0.0.0", port=settings.port)
    return 0


if __name__ == "__main__":  # pragma: no cover - manual execution helper
    sys.exit(main())
