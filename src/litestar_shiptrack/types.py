"""Value types exchanged between carrier adapters and tracking services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from litestar_shiptrack.enums import (
    LabelFormat,
    ShipmentStatus,
    TrackingStatus,
    UpdateSource,
    WebhookEventType,
)


@dataclass(frozen=True)
class Address:
    street1: str
    city: str
    postal_code: str
    country: str
    name: str | None = None
    company: str | None = None
    street2: str | None = None
    state: str | None = None
    phone: str | None = None
    email: str | None = None


@dataclass(frozen=True)
class Parcel:
    length_inches: float
    width_inches: float
    height_inches: float
    weight_oz: float


@dataclass(frozen=True)
class RateQuote:
    id: str
    carrier: str
    service: str
    amount: Decimal
    currency: str
    delivery_days: int | None = None
    delivery_date: str | None = None


@dataclass(frozen=True)
class LabelPurchase:
    """Result of buying a label from a carrier."""

    tracking_number: str
    carrier: str
    service: str
    label_bytes: bytes
    label_format: LabelFormat
    amount: Decimal
    currency: str
    provider_reference: str
    tracking_url: str | None = None


@dataclass(frozen=True)
class TrackingSubscription:
    subscription_id: str


@dataclass(frozen=True)
class TrackingStatusResponse:
    """Latest tracking state reported by a carrier poll."""

    tracking_number: str
    status: TrackingStatus
    detail: str | None = None
    occurred_at: datetime | None = None
    tracking_url: str | None = None


@dataclass(frozen=True)
class TrackingEvent:
    """Canonical tracking update handed to the reconciler."""

    status: TrackingStatus
    detail: str | None = None
    occurred_at: datetime | None = None
    tracking_url: str | None = None
    carrier: str | None = None
    source: UpdateSource = UpdateSource.WEBHOOK


@dataclass(frozen=True)
class WebhookEvent:
    """Carrier webhook payload normalized to a provider-independent shape."""

    type: WebhookEventType
    raw: Any = None
    tracking_number: str | None = None
    carrier: str | None = None
    status: TrackingStatus | None = None
    detail: str | None = None
    occurred_at: datetime | None = None
    tracking_url: str | None = None


@dataclass(frozen=True)
class OrderInfo:
    """The slice of an order the fulfillment core needs."""

    id: str
    buyer_id: str
    seller_id: str
    shipping_address: Address | None = None


@dataclass(frozen=True)
class StoredObject:
    key: str
    url: str


@dataclass(frozen=True)
class TrackingUpdateResult:
    shipment_id: str
    order_id: str
    status: ShipmentStatus
    tracking_status: TrackingStatus
    next_poll_at: datetime | None = None

    @property
    def polling_scheduled(self) -> bool:
        return self.next_poll_at is not None


@dataclass(frozen=True)
class LabelPurchaseResult:
    shipment_id: str
    tracking_number: str
    carrier: str
    service: str
    label_url: str
    amount: Decimal
    currency: str
    subscription_id: str | None = None
