"""Utilities for publishing and updating order review prompts in Slack."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Tuple

from slack_sdk.errors import SlackApiError, SlackClientError
import structlog

from order_relay.orders.models import OrderId, OrderSummary
from order_relay.slack_client import SlackClient

from .messages import build_resolved_message, build_review_message, build_test_message

# Slack errors meaning the prompt can no longer be changed.
EXPIRED_ERROR_CODES = frozenset(
    {
        "message_not_found",
        "channel_not_found",
        "cant_update_message",
        "edit_window_closed",
        "is_archived",
    }
)


class DispatchError(Exception):
    """Raised when a message cannot be delivered to the review channel."""


class PromptExpiredError(Exception):
    """Raised when the review prompt no longer exists or accepts updates."""


@dataclass(frozen=True)
class ReviewPrompt:
    """A review prompt that was posted to Slack."""

    channel_id: str
    ts: str | None
    order_id: OrderId
    customer_email: str
    created_at: datetime


@dataclass(frozen=True)
class PromptReference:
    """The message a decision button was clicked on."""

    channel_id: str
    ts: str
    blocks: Tuple[Dict[str, Any], ...] = field(default_factory=tuple)

    @property
    def key(self) -> str:
        return f"prompt:{self.channel_id}:{self.ts}"


def _error_details(exc: Exception) -> tuple[str, int | None]:
    response = getattr(exc, "response", None)
    if response is None:
        return str(exc), None
    status_code = getattr(response, "status_code", None)
    error_code = response.get("error") if hasattr(response, "get") else None
    return error_code or str(exc), status_code


class ReviewChannel:
    """Post, resolve and acknowledge review prompts in one Slack channel."""

    def __init__(self, *, slack_client: SlackClient, channel_id: str) -> None:
        self._slack = slack_client
        self._channel_id = channel_id

    @property
    def channel_id(self) -> str:
        return self._channel_id

    def is_connected(self) -> bool:
        return self._slack.is_connected()

    def publish_prompt(self, summary: OrderSummary, *, created_at: datetime) -> ReviewPrompt:
        """Post the review prompt for *summary*, raising DispatchError on failure."""

        log = structlog.get_logger().bind(order_id=summary.order_id, channel=self._channel_id)
        payload = build_review_message(summary=summary, created_at=created_at)

        try:
            response = self._slack.post_message(
                channel=self._channel_id,
                text=payload["text"],
                blocks=payload["blocks"],
            )
        except (SlackClientError, OSError) as exc:
            error_code, status_code = _error_details(exc)
            log.error(
                "webhook_failed",
                operation="publish_prompt",
                error=error_code,
                status_code=status_code,
            )
            raise DispatchError(f"Failed to post review prompt: {error_code}") from exc

        channel_id = response.get("channel") or self._channel_id
        ts = response.get("ts")
        if not ts:
            log.warning("prompt_reference_missing", response_keys=list(response.keys()))
        else:
            log.info("prompt_published", ts=ts)

        return ReviewPrompt(
            channel_id=channel_id,
            ts=ts,
            order_id=summary.order_id,
            customer_email=summary.customer_email,
            created_at=created_at,
        )

    def publish_test_message(self, *, sent_at: datetime) -> None:
        """Post the connectivity-check message, raising DispatchError on failure."""

        log = structlog.get_logger().bind(channel=self._channel_id)
        payload = build_test_message(sent_at=sent_at)
        try:
            self._slack.post_message(
                channel=self._channel_id,
                text=payload["text"],
                blocks=payload["blocks"],
            )
        except (SlackClientError, OSError) as exc:
            error_code, status_code = _error_details(exc)
            log.error(
                "webhook_failed",
                operation="publish_test_message",
                error=error_code,
                status_code=status_code,
            )
            raise DispatchError(f"Failed to post test message: {error_code}") from exc
        log.info("test_message_published")

    def close_prompt(self, prompt: PromptReference, *, action: str, decided_by: str | None) -> None:
        """Remove the decision buttons from *prompt*.

        Raises PromptExpiredError when Slack reports the message is gone. Any
        other failure is logged and ignored.
        """

        log = structlog.get_logger().bind(channel=prompt.channel_id, ts=prompt.ts)
        payload = build_resolved_message(blocks=prompt.blocks, action=action, decided_by=decided_by)

        try:
            self._slack.update_message(
                channel=prompt.channel_id,
                ts=prompt.ts,
                text=payload["text"],
                blocks=payload["blocks"],
            )
        except SlackApiError as exc:
            error_code, status_code = _error_details(exc)
            if error_code in EXPIRED_ERROR_CODES:
                log.warning("prompt_expired", error=error_code)
                raise PromptExpiredError(error_code) from exc
            log.error(
                "webhook_failed",
                operation="close_prompt",
                error=error_code,
                status_code=status_code,
            )
        except (SlackClientError, OSError) as exc:
            log.error("webhook_failed", operation="close_prompt", error=str(exc))

    def acknowledge(self, *, channel_id: str, user_id: str, text: str) -> bool:
        """Send a reviewer-only acknowledgment; return False if Slack refused it."""

        try:
            self._slack.post_ephemeral(channel=channel_id, user=user_id, text=text)
        except (SlackClientError, OSError) as exc:
            error_code, status_code = _error_details(exc)
            structlog.get_logger().warning(
                "acknowledgment_failed",
                channel=channel_id,
                user_id=user_id,
                error=error_code,
                status_code=status_code,
            )
            return False
        return True
