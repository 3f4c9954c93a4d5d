"""Order payload models, normalisation, and commerce API access."""

from .commerce import CommerceClient, CommerceFetchError
from .models import (
    MISSING_VALUE,
    NO_PRODUCTS,
    UNKNOWN_USERNAME,
    AdHocOrderPayload,
    InlineOrderPayload,
    OrderReferencePayload,
    OrderSummary,
)
from .normalizer import (
    MalformedPayloadError,
    MissingCustomerEmailError,
    OrderValidationError,
    UnrecognizedPayloadError,
    classify_payload,
    normalize_order,
    resolve_minecraft_username,
)

__all__ = [
    "CommerceClient",
    "CommerceFetchError",
    "MISSING_VALUE",
    "NO_PRODUCTS",
    "UNKNOWN_USERNAME",
    "AdHocOrderPayload",
    "InlineOrderPayload",
    "OrderReferencePayload",
    "OrderSummary",
    "MalformedPayloadError",
    "MissingCustomerEmailError",
    "OrderValidationError",
    "UnrecognizedPayloadError",
    "classify_payload",
    "normalize_order",
    "resolve_minecraft_username",
]
