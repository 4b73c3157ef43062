"""Turns carrier tracking events into persisted shipment state."""

from __future__ import annotations

import logging
from datetime import datetime

from litestar_shiptrack.clock import Clock, utcnow
from litestar_shiptrack.config import ShiptrackConfig
from litestar_shiptrack.enums import NotificationType, ShipmentStatus, UpdateSource
from litestar_shiptrack.protocols import (
    Notifier,
    OrderDirectory,
    PayoutReleaser,
    PollQueue,
    ShipmentRepository,
    TimelineWriter,
)
from litestar_shiptrack.status import (
    humanize_status,
    is_terminal,
    map_tracking_to_shipment_status,
)
from litestar_shiptrack.types import TrackingEvent, TrackingUpdateResult

logger = logging.getLogger(__name__)

_SOURCE_LABELS = {
    UpdateSource.WEBHOOK: "Webhook",
    UpdateSource.POLLER: "Polling",
}


class TrackingReconciler:
    """Sole writer of shipment tracking state.

    Webhooks and polls may race on the same shipment. The update is a
    single last-write-wins transaction, and payout release relies on the
    payout collaborator being idempotent per order.
    """

    def __init__(
        self,
        *,
        repository: ShipmentRepository,
        orders: OrderDirectory,
        timeline: TimelineWriter,
        notifier: Notifier,
        payouts: PayoutReleaser,
        poll_queue: PollQueue,
        config: ShiptrackConfig,
        clock: Clock = utcnow,
    ) -> None:
        self._repository = repository
        self._orders = orders
        self._timeline = timeline
        self._notifier = notifier
        self._payouts = payouts
        self._poll_queue = poll_queue
        self._config = config
        self._clock = clock

    async def apply_tracking_update(
        self,
        tracking_number: str,
        event: TrackingEvent,
        source: UpdateSource | None = None,
    ) -> TrackingUpdateResult | None:
        """Apply one tracking event.

        Returns None when the tracking number belongs to no known shipment
        (or the event is rejected as out of order), otherwise the new state
        and the time of the next scheduled poll.
        """
        source = UpdateSource(source or event.source)
        shipment = await self._repository.find_by_tracking_number(tracking_number)
        if shipment is None:
            logger.info(
                "Ignoring %s update for unknown tracking number %s",
                source,
                tracking_number,
            )
            return None

        order = await self._orders.get_order(shipment.order_id)
        if order is None:
            logger.warning(
                "Shipment %s references missing order %s; ignoring update",
                shipment.id,
                shipment.order_id,
            )
            return None

        if self._is_out_of_order(shipment.tracking_last_event_at, event):
            logger.info(
                "Rejecting out-of-order %s update for %s: event at %s, "
                "last applied event at %s",
                source,
                tracking_number,
                event.occurred_at,
                shipment.tracking_last_event_at,
            )
            return None

        now = self._clock()
        shipment_status = map_tracking_to_shipment_status(event.status)
        next_poll_at = (
            None
            if is_terminal(event.status)
            else now + self._config.fallback_poll_interval
        )
        detail = event.detail or f"Shipment is {humanize_status(event.status)}"

        await self._repository.update_tracking(
            shipment.id,
            status=shipment_status,
            tracking_status=event.status,
            tracking_status_detail=detail,
            tracking_last_event_at=event.occurred_at or now,
            tracking_last_checked_at=now,
            tracking_next_check_at=next_poll_at,
            tracking_url=event.tracking_url or shipment.tracking_url,
            carrier=event.carrier or shipment.carrier,
        )
        logger.info(
            "Shipment %s (order %s) is now %s/%s via %s",
            shipment.id,
            shipment.order_id,
            shipment_status,
            event.status,
            source,
        )

        await self._timeline.add_timeline_event(
            shipment.order_id, f"{_SOURCE_LABELS[source]} update: {detail}"
        )
        await self._notifier.send_notification(
            order.buyer_id,
            NotificationType.ORDER_UPDATED,
            {
                "orderId": shipment.order_id,
                "status": str(shipment_status),
                "trackingNumber": tracking_number,
                "detail": detail,
            },
        )

        if shipment_status == ShipmentStatus.DELIVERED:
            await self._payouts.release_payout_for_order(shipment.order_id)

        if next_poll_at is not None:
            await self._poll_queue.enqueue_poll(shipment.id, next_poll_at)

        return TrackingUpdateResult(
            shipment_id=shipment.id,
            order_id=shipment.order_id,
            status=shipment_status,
            tracking_status=event.status,
            next_poll_at=next_poll_at,
        )

    def _is_out_of_order(
        self, last_event_at: datetime | None, event: TrackingEvent
    ) -> bool:
        if not self._config.reject_out_of_order_events:
            return False
        if last_event_at is None or event.occurred_at is None:
            return False
        return event.occurred_at < last_event_at
