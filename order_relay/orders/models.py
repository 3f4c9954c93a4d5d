"""Pydantic models for inbound order payloads and the normalised summary."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN_USERNAME = "Unknown"
NO_PRODUCTS = "no products"
MISSING_VALUE = "N/A"
DEFAULT_AD_HOC_STATUS = "pending"

OrderId = Union[int, str]


class _PayloadModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class LineItem(_PayloadModel):
    name: str | None = None


class BillingDetails(_PayloadModel):
    email: str | None = None
    first_name: str | None = None
    minecraft_username: str | None = None


class MetaEntry(_PayloadModel):
    key: str | None = None
    value: Any = None


class _UsernameSources(_PayloadModel):
    """Fields consulted when resolving the customer's Minecraft username."""

    minecraft_username: str | None = None
    meta_data: List[MetaEntry] = Field(default_factory=list)
    metadata: List[MetaEntry] = Field(default_factory=list)
    custom_fields: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("meta_data", "metadata", mode="before")
    @classmethod
    def _only_mapping_entries(cls, value):
        if not isinstance(value, list):
            return []
        return [entry for entry in value if isinstance(entry, dict)]

    @field_validator("custom_fields", mode="before")
    @classmethod
    def _mapping_or_empty(cls, value):
        return value if isinstance(value, dict) else {}


class InlineOrderPayload(_UsernameSources):
    """A full commerce order record: billing details plus line items."""

    kind: Literal["inline"] = "inline"
    billing: BillingDetails
    line_items: List[LineItem]
    id: OrderId | None = None
    number: OrderId | None = None
    status: str | None = None
    total: str | int | float | None = None
    payment_method: str | None = None
    payment_method_title: str | None = None


class AdHocOrderPayload(_UsernameSources):
    """A loosely structured order carrying a top-level customer email."""

    kind: Literal["ad_hoc"] = "ad_hoc"
    customer_email: str | None = None
    email: str | None = None
    products: str | List[Any] | None = None
    items: str | List[Any] | None = None
    order_id: OrderId | None = None
    id: OrderId | None = None
    status: str | None = None
    total: str | int | float | None = None
    amount: str | int | float | None = None
    payment_method: str | None = None
    billing: BillingDetails | None = None

    @field_validator("billing", mode="before")
    @classmethod
    def _ignore_non_mapping_billing(cls, value):
        return value if isinstance(value, dict) else None


class OrderReferencePayload(_PayloadModel):
    """A payload that only names an order to be fetched from the commerce API."""

    kind: Literal["reference"] = "reference"
    id: OrderId | None = None
    order_id: OrderId | None = None
    number: OrderId | None = None

    @property
    def reference(self) -> OrderId:
        for candidate in (self.id, self.order_id, self.number):
            if candidate is not None and candidate != "":
                return candidate
        raise ValueError("Order reference payload carries no identifier.")


OrderPayload = Union[InlineOrderPayload, AdHocOrderPayload, OrderReferencePayload]


class OrderSummary(BaseModel):
    """Canonical view of an order, independent of the payload shape it came from."""

    model_config = ConfigDict(frozen=True)

    order_id: OrderId = MISSING_VALUE
    customer_email: str
    product_description: str = NO_PRODUCTS
    total_amount: str = MISSING_VALUE
    status: str = MISSING_VALUE
    payment_method: str = MISSING_VALUE
    minecraft_username: str = UNKNOWN_USERNAME

    @property
    def has_minecraft_username(self) -> bool:
        return self.minecraft_username != UNKNOWN_USERNAME
