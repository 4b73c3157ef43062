"""Collaborator protocols for the shipment tracking core."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol, runtime_checkable

from litestar_shiptrack.enums import LabelFormat, NotificationType
from litestar_shiptrack.types import (
    Address,
    LabelPurchase,
    OrderInfo,
    Parcel,
    RateQuote,
    StoredObject,
    TrackingStatusResponse,
    TrackingSubscription,
    WebhookEvent,
)

__all__ = [
    "BinaryStorage",
    "CarrierAdapter",
    "Notifier",
    "OrderDirectory",
    "PayoutReleaser",
    "PollJobStore",
    "PollQueue",
    "Shipment",
    "ShipmentRepository",
    "TimelineWriter",
]


class Shipment(Protocol):
    """Persisted shipment record as seen by the tracking core."""

    id: str
    order_id: str
    tracking_number: str | None
    carrier: str | None
    service_level: str | None
    provider: str | None
    status: str
    tracking_status: str
    tracking_status_detail: str | None
    tracking_last_event_at: datetime | None
    tracking_last_checked_at: datetime | None
    tracking_next_check_at: datetime | None
    tracking_url: str | None
    tracking_subscription_id: str | None
    label_url: str | None
    label_key: str | None
    label_cost: Decimal | None
    label_currency: str | None
    label_purchased_at: datetime | None


@runtime_checkable
class ShipmentRepository(Protocol):
    """Shipment persistence. One shipment per order."""

    async def get_by_id(self, shipment_id: str) -> Shipment:
        """Get a shipment by ID. Raises KeyError if not found."""
        ...

    async def find_by_tracking_number(
        self, tracking_number: str
    ) -> Shipment | None: ...

    async def find_by_order_id(self, order_id: str) -> Shipment | None: ...

    async def upsert_for_order(self, order_id: str, **fields: Any) -> Shipment:
        """Create the order's shipment or overwrite the given fields."""
        ...

    async def update_tracking(self, shipment_id: str, **fields: Any) -> Shipment:
        """Apply a set of field updates in a single transaction."""
        ...

    async def record_poll_checkpoint(
        self,
        shipment_id: str,
        checked_at: datetime,
        next_check_at: datetime | None,
    ) -> bool:
        """Record a poll attempt on a non-terminal shipment.

        Returns False, writing nothing, when the shipment is missing or has
        already reached a terminal tracking status.
        """
        ...

    async def list_due_for_poll(
        self, now: datetime, limit: int = 100
    ) -> list[Shipment]: ...


@runtime_checkable
class OrderDirectory(Protocol):
    """Read access to orders and seller addresses owned elsewhere."""

    async def get_order(self, order_id: str) -> OrderInfo | None: ...

    async def get_seller_ship_from_address(
        self, seller_id: str
    ) -> Address | None: ...


@runtime_checkable
class TimelineWriter(Protocol):
    """Append-only order timeline."""

    async def add_timeline_event(self, order_id: str, message: str) -> None: ...


@runtime_checkable
class Notifier(Protocol):
    async def send_notification(
        self,
        user_id: str,
        type: NotificationType,
        payload: dict[str, Any],
    ) -> None: ...


@runtime_checkable
class PayoutReleaser(Protocol):
    """Escrow payout release. Must be idempotent per order."""

    async def release_payout_for_order(self, order_id: str) -> Any: ...


@runtime_checkable
class BinaryStorage(Protocol):
    async def upload_binary(
        self, prefix: str, data: bytes, content_type: str
    ) -> StoredObject: ...


@runtime_checkable
class PollQueue(Protocol):
    """Delayed tracking-poll trigger keyed by shipment id."""

    async def enqueue_poll(self, shipment_id: str, not_before: datetime) -> None: ...


@runtime_checkable
class PollJobStore(PollQueue, Protocol):
    """Storage for delayed poll jobs.

    Full lifecycle: enqueue_poll -> get_due_jobs ->
    mark_succeeded / mark_failed / mark_exhausted.
    """

    async def get_due_jobs(self, limit: int = 10) -> list[dict]:
        """Claim jobs that are due and return them."""
        ...

    async def mark_succeeded(self, job_id: str) -> None: ...

    async def mark_failed(self, job_id: str, error: str) -> None:
        """Record a failed attempt and schedule the next one."""
        ...

    async def mark_exhausted(self, job_id: str) -> None: ...


@runtime_checkable
class CarrierAdapter(Protocol):
    """Uniform interface to an external shipping provider."""

    slug: str
    display_name: str

    async def quote_rates(
        self, from_address: Address, to_address: Address, parcel: Parcel
    ) -> list[RateQuote]: ...

    async def purchase_label(
        self,
        rate_id: str,
        from_address: Address,
        to_address: Address,
        parcel: Parcel,
        label_format: LabelFormat = LabelFormat.PDF,
        reference: str | None = None,
    ) -> LabelPurchase: ...

    async def subscribe_tracking(
        self,
        tracking_number: str,
        carrier: str,
        reference: str | None = None,
    ) -> TrackingSubscription: ...

    async def fetch_tracking_status(
        self, tracking_number: str, carrier: str | None = None
    ) -> TrackingStatusResponse | None:
        """Return None when the carrier has no update yet."""
        ...

    def verify_webhook_signature(
        self,
        raw_body: bytes,
        signature: str | None,
        timestamp: str | None,
    ) -> bool: ...

    def parse_webhook_event(self, payload: Any) -> WebhookEvent: ...

    async def aclose(self) -> None:
        """Release network resources held by the adapter."""
        ...
