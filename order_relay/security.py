"""Shared-secret verification for inbound order webhooks."""

from __future__ import annotations

import hmac

WEBHOOK_SECRET_HEADER = "X-Webhook-Secret"
WEBHOOK_SECRET_QUERY_PARAM = "secret"


def is_authorised_webhook(*, expected_secret: str | None, provided_secret: str | None) -> bool:
    """Return True when the caller presented the configured webhook secret.

    The check is disabled when no secret is configured, so every request is
    accepted. Comparison is constant time.
    """

    if not expected_secret:
        return True
    if not provided_secret:
        return False
    return hmac.compare_digest(expected_secret.encode("utf-8"), provided_secret.encode("utf-8"))
