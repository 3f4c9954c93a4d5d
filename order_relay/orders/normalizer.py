"""Classify inbound order payloads and reduce them to an OrderSummary."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

import structlog
from pydantic import ValidationError

from .commerce import CommerceClient
from .models import (
    DEFAULT_AD_HOC_STATUS,
    MISSING_VALUE,
    NO_PRODUCTS,
    UNKNOWN_USERNAME,
    AdHocOrderPayload,
    BillingDetails,
    InlineOrderPayload,
    MetaEntry,
    OrderPayload,
    OrderReferencePayload,
    OrderSummary,
)

MISSING_REQUIRED_FIELDS = "missing_required_fields"
MISSING_CUSTOMER_EMAIL = "missing_customer_email"
MALFORMED_PAYLOAD = "malformed_payload"

CUSTOM_FIELD_USERNAME_ALIASES = ("minecraft_username", "mc_username", "username")
_REFERENCE_KEYS = ("id", "order_id", "number")


class OrderValidationError(ValueError):
    """Base class for payloads that cannot be turned into an order summary."""

    reason = MISSING_REQUIRED_FIELDS


class UnrecognizedPayloadError(OrderValidationError):
    """Raised when a payload matches none of the known order shapes."""

    reason = MISSING_REQUIRED_FIELDS


class MissingCustomerEmailError(OrderValidationError):
    """Raised when a recognised payload carries no customer email."""

    reason = MISSING_CUSTOMER_EMAIL


class MalformedPayloadError(OrderValidationError):
    """Raised when a recognised shape has fields of the wrong type."""

    reason = MALFORMED_PAYLOAD


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


def _first_present(*values: Any) -> Any:
    for value in values:
        if _present(value):
            return value
    return None


def _display(value: Any, default: str = MISSING_VALUE) -> str:
    if not _present(value):
        return default
    return str(value).strip()


def _without_kind(payload: Mapping[str, Any]) -> dict:
    # "kind" is the variant tag; upstream payloads never set it.
    return {key: value for key, value in payload.items() if key != "kind"}


def classify_payload(payload: Mapping[str, Any]) -> OrderPayload:
    """Return the single payload variant *payload* belongs to."""

    if not isinstance(payload, Mapping):
        raise UnrecognizedPayloadError("Invalid order format.")

    billing = payload.get("billing")
    line_items = payload.get("line_items")
    data = _without_kind(payload)

    try:
        if isinstance(billing, Mapping) and isinstance(line_items, list):
            return InlineOrderPayload.model_validate(data)
        if _present(payload.get("customer_email")) or _present(payload.get("email")):
            return AdHocOrderPayload.model_validate(data)
        if any(_present(payload.get(key)) for key in _REFERENCE_KEYS):
            return OrderReferencePayload.model_validate(data)
    except ValidationError as exc:
        fields = sorted({".".join(str(part) for part in error["loc"]) for error in exc.errors()})
        raise MalformedPayloadError(f"Invalid order fields: {', '.join(fields)}") from exc

    raise UnrecognizedPayloadError("Invalid order format.")


def _describe_products(raw: Any) -> str:
    if isinstance(raw, str):
        return raw.strip() or NO_PRODUCTS
    if isinstance(raw, list):
        names = []
        for item in raw:
            if isinstance(item, Mapping):
                name = item.get("name")
            else:
                name = item
            if _present(name):
                names.append(str(name).strip())
        return ", ".join(names) or NO_PRODUCTS
    return NO_PRODUCTS


def _scan_metadata(entries: Iterable[MetaEntry]) -> Any:
    for entry in entries:
        if entry.key and "minecraft" in entry.key.lower() and _present(entry.value):
            return entry.value
    return None


def resolve_minecraft_username(payload: InlineOrderPayload | AdHocOrderPayload) -> str:
    """Resolve the Minecraft username, degrading to ``"Unknown"``."""

    billing: BillingDetails | None = payload.billing
    custom_value = _first_present(
        *(payload.custom_fields.get(alias) for alias in CUSTOM_FIELD_USERNAME_ALIASES)
    )
    candidate = _first_present(
        billing.minecraft_username if billing else None,
        payload.minecraft_username,
        _scan_metadata(payload.meta_data),
        _scan_metadata(payload.metadata),
        custom_value,
        billing.first_name if billing else None,
    )
    return _display(candidate, UNKNOWN_USERNAME)


def _require_email(value: str | None) -> str:
    if not _present(value):
        raise MissingCustomerEmailError("Customer email is required.")
    return value.strip()


def summarise_inline(payload: InlineOrderPayload) -> OrderSummary:
    order_id = _first_present(payload.id, payload.number)
    return OrderSummary(
        order_id=order_id if order_id is not None else MISSING_VALUE,
        customer_email=_require_email(payload.billing.email),
        product_description=_describe_products([item.name for item in payload.line_items]),
        total_amount=_display(payload.total),
        status=_display(payload.status),
        payment_method=_display(_first_present(payload.payment_method_title, payload.payment_method)),
        minecraft_username=resolve_minecraft_username(payload),
    )


def summarise_ad_hoc(payload: AdHocOrderPayload) -> OrderSummary:
    order_id = _first_present(payload.order_id, payload.id)
    return OrderSummary(
        order_id=order_id if order_id is not None else MISSING_VALUE,
        customer_email=_require_email(_first_present(payload.customer_email, payload.email)),
        product_description=_describe_products(_first_present(payload.products, payload.items)),
        total_amount=_display(_first_present(payload.total, payload.amount)),
        status=_display(payload.status, DEFAULT_AD_HOC_STATUS),
        payment_method=_display(payload.payment_method),
        minecraft_username=resolve_minecraft_username(payload),
    )


def summarise_reference(
    payload: OrderReferencePayload,
    commerce_client: CommerceClient | None,
) -> OrderSummary:
    if commerce_client is None:
        raise UnrecognizedPayloadError(
            "Order references cannot be resolved because the commerce API is not configured."
        )

    record = commerce_client.fetch_order(payload.reference)
    try:
        fetched = InlineOrderPayload.model_validate(
            {"billing": {}, "line_items": [], **_without_kind(record)}
        )
    except ValidationError as exc:
        raise MalformedPayloadError(
            f"Commerce API returned an unusable record for order {payload.reference}"
        ) from exc

    summary = summarise_inline(fetched)
    if summary.order_id == MISSING_VALUE:
        summary = summary.model_copy(update={"order_id": payload.reference})
    return summary


def normalize_order(
    payload: Mapping[str, Any],
    *,
    commerce_client: CommerceClient | None = None,
) -> OrderSummary:
    """Classify *payload* and extract its canonical OrderSummary.

    Raises an OrderValidationError subclass for unusable payloads and lets
    CommerceFetchError propagate when a referenced order cannot be fetched.
    """

    variant = classify_payload(payload)
    log = structlog.get_logger().bind(payload_kind=variant.kind)

    if isinstance(variant, InlineOrderPayload):
        summary = summarise_inline(variant)
    elif isinstance(variant, AdHocOrderPayload):
        summary = summarise_ad_hoc(variant)
    else:
        summary = summarise_reference(variant, commerce_client)

    log.info("order_normalised", order_id=summary.order_id)
    return summary
