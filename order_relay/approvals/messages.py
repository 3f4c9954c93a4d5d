"""Block Kit message builders for order review prompts."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Sequence

from order_relay.orders.models import OrderSummary

from .actions import APPROVE, DECLINE, Decision, encode_decision_value

APPROVE_ACTION_ID = "order_approve"
DECLINE_ACTION_ID = "order_decline"
DECISION_BLOCK_ID = "order_decision_buttons"

_DECISION_LABELS = {
    APPROVE: ":white_check_mark: Approved",
    DECLINE: ":x: Declined",
}


def _escape(value: Any) -> str:
    text = str(value)
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _format_timestamp(moment: datetime) -> str:
    fallback = moment.strftime("%Y-%m-%d %H:%M:%S %Z").strip()
    return f"<!date^{int(moment.timestamp())}^{{date_short_pretty}} {{time_secs}}|{fallback}>"


def _summary_lines(summary: OrderSummary) -> List[str]:
    lines = [
        f":e-mail: *Email:* {_escape(summary.customer_email)}",
        f":package: *Product(s):* {_escape(summary.product_description)}",
        f":id: *Order ID:* {_escape(summary.order_id)}",
        f":bar_chart: *Status:* {_escape(summary.status)}",
        f":moneybag: *Total:* {_escape(summary.total_amount)}",
        f":credit_card: *Payment:* {_escape(summary.payment_method)}",
    ]
    if summary.has_minecraft_username:
        lines.append(f":video_game: *Minecraft Username:* {_escape(summary.minecraft_username)}")
    return lines


def _decision_buttons(summary: OrderSummary) -> Dict[str, Any]:
    order_id = summary.order_id
    approve_value = encode_decision_value(
        Decision(action=APPROVE, customer_email=summary.customer_email, order_id=order_id)
    )
    decline_value = encode_decision_value(
        Decision(action=DECLINE, customer_email=summary.customer_email, order_id=order_id)
    )
    return {
        "type": "actions",
        "block_id": DECISION_BLOCK_ID,
        "elements": [
            {
                "type": "button",
                "text": {"type": "plain_text", "text": "Approve", "emoji": True},
                "style": "primary",
                "action_id": APPROVE_ACTION_ID,
                "value": approve_value,
            },
            {
                "type": "button",
                "text": {"type": "plain_text", "text": "Decline", "emoji": True},
                "style": "danger",
                "action_id": DECLINE_ACTION_ID,
                "value": decline_value,
                "confirm": {
                    "title": {"type": "plain_text", "text": "Decline order"},
                    "text": {
                        "type": "mrkdwn",
                        "text": "The customer will be emailed that their order was declined.",
                    },
                    "confirm": {"type": "plain_text", "text": "Decline"},
                    "deny": {"type": "plain_text", "text": "Cancel"},
                },
            },
        ],
    }


def build_review_message(*, summary: OrderSummary, created_at: datetime) -> Dict[str, Any]:
    """Build the review prompt posted for a newly received order."""

    blocks: List[Dict[str, Any]] = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": ":shopping_trolley: New Order Received!", "emoji": True},
        },
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": "\n".join(_summary_lines(summary))},
        },
        {
            "type": "context",
            "elements": [
                {"type": "mrkdwn", "text": f":alarm_clock: Received {_format_timestamp(created_at)}"}
            ],
        },
        _decision_buttons(summary),
    ]

    return {
        "text": f"New order {summary.order_id} from {summary.customer_email} awaiting review.",
        "blocks": blocks,
    }


def build_resolved_message(
    *,
    blocks: Sequence[Dict[str, Any]],
    action: str,
    decided_by: str | None,
) -> Dict[str, Any]:
    """Return the prompt with its buttons replaced by the decision line."""

    kept = [block for block in blocks if block.get("type") != "actions"]
    label = _DECISION_LABELS.get(action, action.capitalize())
    decided = f"{label} by <@{decided_by}>" if decided_by else label
    kept.append(
        {
            "type": "context",
            "elements": [{"type": "mrkdwn", "text": decided}],
        }
    )
    return {
        "text": f"Order review resolved: {decided}.",
        "blocks": kept,
    }


def build_test_message(*, sent_at: datetime) -> Dict[str, Any]:
    """Return the canned connectivity-check message."""

    text = (
        ":test_tube: *Test Webhook Successful!*\n"
        ":white_check_mark: Bot is connected and working\n"
        f":alarm_clock: *Time:* {_format_timestamp(sent_at)}"
    )
    return {
        "text": "Test webhook successful.",
        "blocks": [{"type": "section", "text": {"type": "mrkdwn", "text": text}}],
    }
