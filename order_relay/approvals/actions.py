"""Encoding and parsing of the decision carried by review prompt buttons."""

from __future__ import annotations

import json
from dataclasses import dataclass

APPROVE = "approve"
DECLINE = "decline"

_ACTION_ALIASES = {
    "approve": APPROVE,
    "accept": APPROVE,
    "decline": DECLINE,
}

_LEGACY_SEPARATOR = "_"


class InvalidDecisionError(ValueError):
    """Raised when a button value cannot be decoded into a decision."""


@dataclass(frozen=True)
class Decision:
    """A reviewer's choice on one order, recovered from the button alone."""

    action: str
    customer_email: str
    order_id: int | str | None = None

    @property
    def key(self) -> str:
        order = "" if self.order_id is None else str(self.order_id)
        return f"order:{order}:{self.customer_email.lower()}"


def normalise_action(raw_action: str | None) -> str:
    action = _ACTION_ALIASES.get((raw_action or "").strip().lower())
    if action is None:
        raise InvalidDecisionError(f"Unknown decision action {raw_action!r}.")
    return action


def _validate_email(value) -> str:
    if not isinstance(value, str) or "@" not in value:
        raise InvalidDecisionError("Decision payload carries no customer email.")
    return value.strip()


def encode_decision_value(decision: Decision) -> str:
    """Serialise *decision* into a compact JSON button value."""

    payload: dict = {"action": decision.action, "email": decision.customer_email}
    if decision.order_id is not None:
        payload["order_id"] = decision.order_id
    return json.dumps(payload, separators=(",", ":"))


def _parse_json_value(raw_value: str) -> Decision:
    try:
        payload = json.loads(raw_value)
    except json.JSONDecodeError as exc:
        raise InvalidDecisionError("Invalid decision payload.") from exc

    if not isinstance(payload, dict):
        raise InvalidDecisionError("Invalid decision payload.")

    order_id = payload.get("order_id")
    if order_id is not None and (isinstance(order_id, bool) or not isinstance(order_id, (int, str))):
        raise InvalidDecisionError("Invalid order id in decision payload.")

    return Decision(
        action=normalise_action(payload.get("action")),
        customer_email=_validate_email(payload.get("email")),
        order_id=order_id,
    )


def _parse_delimited_value(raw_value: str) -> Decision:
    # Older prompts used "action_email"; everything after the first separator is the email.
    action, separator, email = raw_value.partition(_LEGACY_SEPARATOR)
    if not separator or not email:
        raise InvalidDecisionError("Invalid decision payload.")

    return Decision(
        action=normalise_action(action),
        customer_email=_validate_email(email),
    )


def parse_decision_value(raw_value: str | None) -> Decision:
    """Decode a button value into a Decision.

    JSON values are produced by current prompts; the underscore-delimited form
    is still accepted for prompts posted before the JSON encoding.
    """

    value = (raw_value or "").strip()
    if not value:
        raise InvalidDecisionError("Decision payload is empty.")
    if value.startswith("{"):
        return _parse_json_value(value)
    return _parse_delimited_value(value)
