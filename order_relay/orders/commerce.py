"""WooCommerce REST client used to resolve orders referenced only by id."""

from __future__ import annotations

from typing import Any, Dict
from urllib.parse import quote

import requests
import structlog


class CommerceFetchError(Exception):
    """Raised when an order record cannot be fetched from the commerce API."""


class CommerceClient:
    """Fetch order records from ``GET {base_url}/orders/{id}`` with basic auth."""

    def __init__(
        self,
        *,
        base_url: str,
        consumer_key: str,
        consumer_secret: str,
        timeout: float = 5.0,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._auth = (consumer_key, consumer_secret)
        self._timeout = timeout
        self._session = session or requests.Session()

    def order_url(self, order_id: int | str) -> str:
        return f"{self._base_url}/orders/{quote(str(order_id), safe='')}"

    def fetch_order(self, order_id: int | str) -> Dict[str, Any]:
        """Return the raw order record for *order_id*."""

        url = self.order_url(order_id)
        log = structlog.get_logger().bind(order_id=order_id, url=url)

        try:
            response = self._session.get(url, auth=self._auth, timeout=self._timeout)
        except requests.Timeout as exc:
            log.error("commerce_fetch_timeout", timeout=self._timeout)
            raise CommerceFetchError(f"Timed out fetching order {order_id}") from exc
        except requests.RequestException as exc:
            log.error("commerce_fetch_failed", error=str(exc))
            raise CommerceFetchError(f"Could not reach commerce API for order {order_id}: {exc}") from exc

        if not response.ok:
            log.error("commerce_fetch_rejected", status_code=response.status_code, body=response.text[:500])
            raise CommerceFetchError(
                f"Commerce API returned {response.status_code} for order {order_id}"
            )

        try:
            record = response.json()
        except ValueError as exc:
            log.error("commerce_fetch_invalid_json")
            raise CommerceFetchError(f"Commerce API returned invalid JSON for order {order_id}") from exc

        if not isinstance(record, dict):
            log.error("commerce_fetch_unexpected_body", body_type=type(record).__name__)
            raise CommerceFetchError(f"Commerce API returned an unexpected body for order {order_id}")

        log.info("commerce_order_fetched")
        return record
