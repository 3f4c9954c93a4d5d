"""Fixed customer email templates, one per decision action."""

from __future__ import annotations

from dataclasses import dataclass

from .actions import APPROVE, DECLINE

SUBJECT = "Your Order Status"

_APPROVE_BODY = """\
Congratulations!

Your order has been successfully accepted and is now being processed. You will receive your requested resource within 24 hours.

If we fail to deliver within the timeframe, you may raise a support ticket on our community server.

Join our community: {support_url}

Thank you for choosing {store_name}!

- The {store_name} Team
"""

_DECLINE_BODY = """\
Order Declined

We regret to inform you that your recent order could not be processed.

This may have occurred due to one of the following reasons:
- Invalid payment information
- Unauthorized or incorrect username
- Technical issues during checkout

For assistance or to try again, please contact our support team.

Join our community: {support_url}

We apologize for the inconvenience and appreciate your understanding.

- The {store_name} Team
"""

_BODIES = {
    APPROVE: _APPROVE_BODY,
    DECLINE: _DECLINE_BODY,
}


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    body: str


@dataclass(frozen=True)
class NotificationTemplates:
    """Render the approve/decline email for the configured store."""

    store_name: str
    support_url: str

    def render(self, action: str) -> RenderedEmail:
        try:
            body = _BODIES[action]
        except KeyError as exc:
            raise ValueError(f"No email template for action {action!r}") from exc
        return RenderedEmail(
            subject=SUBJECT,
            body=body.format(store_name=self.store_name, support_url=self.support_url),
        )
