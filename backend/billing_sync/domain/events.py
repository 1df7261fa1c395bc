"""
Webhook Event Models

Typed variants for the Stripe events this service reconciles, plus the
parsing that turns a verified event mapping into one of them.

Handled events:
- checkout.session.completed
- invoice.paid
- invoice.payment_failed
- customer.subscription.deleted
"""

import re
from enum import Enum
from typing import Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from billing_sync.infrastructure.exceptions import InvalidEventError


class EventType(str, Enum):
    """Stripe event types routed by the webhook."""
    CHECKOUT_COMPLETED = "checkout.session.completed"
    INVOICE_PAID = "invoice.paid"
    INVOICE_PAYMENT_FAILED = "invoice.payment_failed"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"


SUBSCRIPTION_ID_PATTERN = re.compile(r"^sub_[A-Za-z0-9]+$")

# Where a subscription reference may live, in priority order.
# "*" walks every element of a list.
SUBSCRIPTION_ID_PATHS: tuple[tuple[str, ...], ...] = (
    ("subscription",),
    ("parent", "subscription_details", "subscription"),
    ("lines", "data", "*", "subscription"),
    ("lines", "data", "*", "parent", "subscription_item_details", "subscription"),
)


# =============================================================================
# Event Variants
# =============================================================================

class IdentityHints(BaseModel):
    """Everything an event tells us about who the customer is."""
    direct_id: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    email: Optional[str] = None


class CheckoutCompletedEvent(BaseModel):
    type: Literal[EventType.CHECKOUT_COMPLETED] = EventType.CHECKOUT_COMPLETED
    event_id: Optional[str] = None
    session_id: Optional[str] = None
    identity: IdentityHints = Field(default_factory=IdentityHints)
    customer_id: Optional[str] = None
    subscription_id: Optional[str] = None


class InvoicePaidEvent(BaseModel):
    type: Literal[EventType.INVOICE_PAID] = EventType.INVOICE_PAID
    event_id: Optional[str] = None
    invoice_id: Optional[str] = None
    identity: IdentityHints = Field(default_factory=IdentityHints)
    customer_id: Optional[str] = None
    subscription_id: Optional[str] = None


class InvoicePaymentFailedEvent(BaseModel):
    type: Literal[EventType.INVOICE_PAYMENT_FAILED] = EventType.INVOICE_PAYMENT_FAILED
    event_id: Optional[str] = None
    invoice_id: Optional[str] = None
    identity: IdentityHints = Field(default_factory=IdentityHints)
    customer_id: Optional[str] = None
    subscription_id: Optional[str] = None


class SubscriptionDeletedEvent(BaseModel):
    type: Literal[EventType.SUBSCRIPTION_DELETED] = EventType.SUBSCRIPTION_DELETED
    event_id: Optional[str] = None
    customer_id: Optional[str] = None
    subscription_id: Optional[str] = None


WebhookEvent = Union[
    CheckoutCompletedEvent,
    InvoicePaidEvent,
    InvoicePaymentFailedEvent,
    SubscriptionDeletedEvent,
]


# =============================================================================
# Field Extraction
# =============================================================================

def _reference_id(value: Any) -> Optional[str]:
    """Return an ID from either a bare string or an expanded object."""
    if isinstance(value, str):
        return value or None
    if isinstance(value, Mapping):
        ref = value.get("id")
        if isinstance(ref, str) and ref:
            return ref
    return None


def _walk(node: Any, path: tuple[str, ...]) -> list[Any]:
    """Collect every value reachable from ``node`` along ``path``."""
    if not path:
        return [node]

    head, rest = path[0], path[1:]

    if head == "*":
        if not isinstance(node, list):
            return []
        found = []
        for item in node:
            found.extend(_walk(item, rest))
        return found

    if not isinstance(node, Mapping) or node.get(head) is None:
        return []
    return _walk(node[head], rest)


def extract_subscription_id(payload: Mapping[str, Any]) -> Optional[str]:
    """
    Find the subscription ID inside an event object.

    Checkout sessions carry it directly; invoices moved it under
    ``parent.subscription_details`` and their line items. The first
    candidate that looks like a subscription reference wins.

    Args:
        payload: The ``data.object`` of a Stripe event

    Returns:
        Subscription ID (``sub_...``) or None
    """
    for path in SUBSCRIPTION_ID_PATHS:
        for candidate in _walk(payload, path):
            ref = _reference_id(candidate)
            if ref and SUBSCRIPTION_ID_PATTERN.match(ref):
                return ref
    return None


def _object(value: Any, field: str) -> Mapping[str, Any]:
    """A missing object reads as empty; any other non-object is malformed."""
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise TypeError(f"{field} must be an object, got {type(value).__name__}")
    return value


def _invoice_metadata(invoice: Mapping[str, Any]) -> dict[str, Any]:
    """Subscription metadata copied onto the invoice, if any."""
    for path in (
        ("parent", "subscription_details", "metadata"),
        ("subscription_details", "metadata"),
    ):
        for metadata in _walk(invoice, path):
            if isinstance(metadata, Mapping):
                return dict(metadata)
    return {}


# =============================================================================
# Parsing
# =============================================================================

def _parse_checkout(event_id: Optional[str], session: Mapping[str, Any]) -> CheckoutCompletedEvent:
    customer_details = _object(session.get("customer_details"), "customer_details")
    return CheckoutCompletedEvent(
        event_id=event_id,
        session_id=session.get("id"),
        identity=IdentityHints(
            direct_id=session.get("client_reference_id") or None,
            metadata=dict(_object(session.get("metadata"), "metadata")),
            email=session.get("customer_email") or customer_details.get("email") or None,
        ),
        customer_id=_reference_id(session.get("customer")),
        subscription_id=extract_subscription_id(session),
    )


def _parse_invoice(event_id: Optional[str], invoice: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "event_id": event_id,
        "invoice_id": invoice.get("id"),
        "identity": IdentityHints(
            metadata=_invoice_metadata(invoice),
            email=invoice.get("customer_email") or None,
        ),
        "customer_id": _reference_id(invoice.get("customer")),
        "subscription_id": extract_subscription_id(invoice),
    }


def _parse_subscription_deleted(
    event_id: Optional[str],
    subscription: Mapping[str, Any],
) -> SubscriptionDeletedEvent:
    return SubscriptionDeletedEvent(
        event_id=event_id,
        customer_id=_reference_id(subscription.get("customer")),
        subscription_id=_reference_id(subscription.get("id")),
    )


def parse_event(event: Mapping[str, Any]) -> Optional[WebhookEvent]:
    """
    Convert a verified Stripe event into a typed variant.

    Args:
        event: Event mapping as delivered by Stripe

    Returns:
        One of the WebhookEvent variants, or None for event types
        this service does not handle

    Raises:
        InvalidEventError: a handled event whose fields have the wrong types
    """
    try:
        event_type = EventType(event.get("type"))
    except ValueError:
        return None

    event_id = event.get("id")

    try:
        payload = _object(_object(event.get("data"), "data").get("object"), "data.object")

        if event_type == EventType.CHECKOUT_COMPLETED:
            return _parse_checkout(event_id, payload)

        if event_type == EventType.INVOICE_PAID:
            return InvoicePaidEvent(**_parse_invoice(event_id, payload))

        if event_type == EventType.INVOICE_PAYMENT_FAILED:
            return InvoicePaymentFailedEvent(**_parse_invoice(event_id, payload))

        return _parse_subscription_deleted(event_id, payload)
    except (TypeError, ValidationError) as e:
        raise InvalidEventError(
            f"Malformed {event_type.value} event: {e}",
            event_id=event_id if isinstance(event_id, str) else None,
            original_error=e,
        )
