"""Label purchase workflow."""

from __future__ import annotations

import logging
from decimal import Decimal

from litestar_shiptrack.clock import Clock, utcnow
from litestar_shiptrack.config import ShiptrackConfig
from litestar_shiptrack.enums import (
    LabelFormat,
    NotificationType,
    ShipmentStatus,
    TrackingStatus,
)
from litestar_shiptrack.exceptions import (
    OrderNotFoundError,
    SellerMismatchError,
    ShippingValidationError,
    TrackingSubscriptionFailure,
)
from litestar_shiptrack.protocols import (
    BinaryStorage,
    CarrierAdapter,
    Notifier,
    OrderDirectory,
    PollQueue,
    Shipment,
    ShipmentRepository,
    TimelineWriter,
)
from litestar_shiptrack.storage import label_content_type
from litestar_shiptrack.types import (
    Address,
    LabelPurchaseResult,
    OrderInfo,
    Parcel,
    RateQuote,
)

logger = logging.getLogger(__name__)


class LabelPurchaseOrchestrator:
    """Quotes rates and buys labels for orders.

    A purchase creates (or refreshes) the order's shipment, subscribes to
    push tracking on a best-effort basis, and always arms the first poll.
    """

    def __init__(
        self,
        *,
        carrier: CarrierAdapter,
        repository: ShipmentRepository,
        orders: OrderDirectory,
        timeline: TimelineWriter,
        notifier: Notifier,
        storage: BinaryStorage,
        poll_queue: PollQueue,
        config: ShiptrackConfig,
        clock: Clock = utcnow,
    ) -> None:
        self._carrier = carrier
        self._repository = repository
        self._orders = orders
        self._timeline = timeline
        self._notifier = notifier
        self._storage = storage
        self._poll_queue = poll_queue
        self._config = config
        self._clock = clock

    async def _load_route(
        self, order_id: str, seller_id: str | None
    ) -> tuple[OrderInfo, Address, Address]:
        order = await self._orders.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        if seller_id and order.seller_id != seller_id:
            raise SellerMismatchError(order_id, seller_id)
        if order.shipping_address is None:
            raise ShippingValidationError(
                "Order missing shipping address", field="orderId"
            )
        from_address = await self._orders.get_seller_ship_from_address(
            order.seller_id
        )
        if from_address is None:
            raise ShippingValidationError(
                "Seller missing default shipping address", field="sellerId"
            )
        return order, from_address, order.shipping_address

    async def quote_rates(
        self,
        order_id: str,
        parcel: Parcel,
        seller_id: str | None = None,
    ) -> list[RateQuote]:
        _, from_address, to_address = await self._load_route(order_id, seller_id)
        return await self._carrier.quote_rates(from_address, to_address, parcel)

    async def purchase_label(
        self,
        order_id: str,
        rate_id: str,
        parcel: Parcel,
        seller_id: str | None = None,
        label_format: LabelFormat = LabelFormat.PDF,
    ) -> LabelPurchaseResult:
        order, from_address, to_address = await self._load_route(
            order_id, seller_id
        )

        existing = await self._repository.find_by_order_id(order_id)
        if existing is not None and existing.tracking_number and existing.label_url:
            logger.info(
                "Order %s already has label %s; returning it",
                order_id,
                existing.tracking_number,
            )
            return _result_from_shipment(existing)

        reference = f"order:{order_id}"
        purchase = await self._carrier.purchase_label(
            rate_id,
            from_address,
            to_address,
            parcel,
            label_format=label_format,
            reference=reference,
        )
        upload = await self._storage.upload_binary(
            self._config.label_storage_prefix,
            purchase.label_bytes,
            label_content_type(purchase.label_format),
        )

        now = self._clock()
        next_check_at = now + self._config.fallback_poll_interval
        shipment = await self._repository.upsert_for_order(
            order_id,
            status=ShipmentStatus.PREPARING,
            tracking_number=purchase.tracking_number,
            provider=self._carrier.slug,
            carrier=purchase.carrier,
            service_level=purchase.service,
            tracking_url=purchase.tracking_url,
            tracking_status=TrackingStatus.LABEL_PURCHASED,
            tracking_status_detail="Label purchased",
            tracking_next_check_at=next_check_at,
            label_url=upload.url,
            label_key=upload.key,
            label_cost=purchase.amount,
            label_currency=purchase.currency,
            label_purchased_at=now,
        )
        logger.info(
            "Purchased %s %s label %s for order %s",
            purchase.carrier,
            purchase.service,
            purchase.tracking_number,
            order_id,
        )

        await self._timeline.add_timeline_event(
            order_id,
            f"Shipping label purchased via {self._carrier.display_name}",
        )
        await self._notifier.send_notification(
            order.buyer_id,
            NotificationType.ORDER_UPDATED,
            {
                "orderId": order_id,
                "status": str(ShipmentStatus.PREPARING),
                "trackingNumber": purchase.tracking_number,
                "message": "Seller purchased a shipping label for your order.",
            },
        )

        subscription_id = await self._subscribe_best_effort(
            shipment.id, purchase.tracking_number, purchase.carrier, reference
        )

        # Polling is the guaranteed propagation path even with a subscription.
        await self._poll_queue.enqueue_poll(shipment.id, next_check_at)

        return LabelPurchaseResult(
            shipment_id=shipment.id,
            tracking_number=purchase.tracking_number,
            carrier=purchase.carrier,
            service=purchase.service,
            label_url=upload.url,
            amount=purchase.amount,
            currency=purchase.currency,
            subscription_id=subscription_id,
        )

    async def _subscribe_best_effort(
        self,
        shipment_id: str,
        tracking_number: str,
        carrier: str,
        reference: str,
    ) -> str | None:
        try:
            subscription = await self._carrier.subscribe_tracking(
                tracking_number, carrier, reference=reference
            )
        except Exception as exc:
            failure = TrackingSubscriptionFailure(tracking_number, exc)
            logger.warning("%s; relying on polling", failure)
            return None

        await self._repository.update_tracking(
            shipment_id, tracking_subscription_id=subscription.subscription_id
        )
        return subscription.subscription_id


def _result_from_shipment(shipment: Shipment) -> LabelPurchaseResult:
    return LabelPurchaseResult(
        shipment_id=shipment.id,
        tracking_number=shipment.tracking_number or "",
        carrier=shipment.carrier or "",
        service=shipment.service_level or "",
        label_url=shipment.label_url or "",
        amount=(
            shipment.label_cost if shipment.label_cost is not None else Decimal("0")
        ),
        currency=shipment.label_currency or "USD",
        subscription_id=shipment.tracking_subscription_id,
    )
