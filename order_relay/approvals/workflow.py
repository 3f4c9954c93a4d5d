"""Present orders for review and act on the reviewer's decision."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Callable, Protocol

import structlog

from order_relay.mailer import MailDeliveryError
from order_relay.orders.models import OrderSummary

from .actions import Decision
from .ledger import ResolvedPromptLedger
from .notifications import PromptExpiredError, PromptReference, ReviewChannel, ReviewPrompt
from .templates import NotificationTemplates

SENT = "sent"
FAILED = "failed"
ALREADY_RESOLVED = "already_resolved"
EXPIRED = "expired"


class Mailer(Protocol):
    def send(self, *, recipient: str, subject: str, body: str) -> None:
        ...


@dataclass(frozen=True)
class NotificationResult:
    outcome: str
    action: str
    recipient: str
    error: str | None = None

    @property
    def delivered(self) -> bool:
        return self.outcome == SENT


class ApprovalWorkflow:
    """Turn order summaries into review prompts and decisions into emails."""

    def __init__(
        self,
        *,
        channel: ReviewChannel,
        mailer: Mailer,
        templates: NotificationTemplates,
        ledger: ResolvedPromptLedger | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._channel = channel
        self._mailer = mailer
        self._templates = templates
        self._ledger = ledger or ResolvedPromptLedger()
        self._clock = clock or (lambda: datetime.now(UTC))

    @property
    def channel(self) -> ReviewChannel:
        return self._channel

    def present(self, summary: OrderSummary) -> ReviewPrompt:
        """Post the review prompt for *summary*; DispatchError propagates."""

        return self._channel.publish_prompt(summary, created_at=self._clock())

    def send_test_message(self) -> None:
        self._channel.publish_test_message(sent_at=self._clock())

    def resolve(
        self,
        decision: Decision,
        *,
        prompt: PromptReference | None = None,
        decided_by: str | None = None,
    ) -> NotificationResult:
        """Email the customer the outcome of *decision*, at most once per prompt."""

        log = structlog.get_logger().bind(
            action=decision.action,
            order_id=decision.order_id,
            recipient=decision.customer_email,
            decided_by=decided_by,
        )
        key = prompt.key if prompt is not None else decision.key

        if not self._ledger.claim(key):
            log.info("decision_already_resolved", prompt_key=key)
            return NotificationResult(
                outcome=ALREADY_RESOLVED,
                action=decision.action,
                recipient=decision.customer_email,
            )

        if prompt is not None:
            try:
                self._channel.close_prompt(prompt, action=decision.action, decided_by=decided_by)
            except PromptExpiredError as exc:
                log.warning("decision_prompt_expired", error=str(exc))
                return NotificationResult(
                    outcome=EXPIRED,
                    action=decision.action,
                    recipient=decision.customer_email,
                    error=str(exc),
                )

        email = self._templates.render(decision.action)
        try:
            self._mailer.send(
                recipient=decision.customer_email,
                subject=email.subject,
                body=email.body,
            )
        except MailDeliveryError as exc:
            log.error("decision_email_failed", error=str(exc))
            return NotificationResult(
                outcome=FAILED,
                action=decision.action,
                recipient=decision.customer_email,
                error=str(exc),
            )

        log.info("decision_resolved")
        return NotificationResult(
            outcome=SENT,
            action=decision.action,
            recipient=decision.customer_email,
        )
