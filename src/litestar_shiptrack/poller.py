"""Poll handler: fetches carrier status for one shipment."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from litestar_shiptrack.clock import Clock, utcnow
from litestar_shiptrack.config import ShiptrackConfig
from litestar_shiptrack.enums import TrackingStatus, UpdateSource
from litestar_shiptrack.exceptions import CarrierTimeoutError
from litestar_shiptrack.protocols import (
    CarrierAdapter,
    PollQueue,
    ShipmentRepository,
)
from litestar_shiptrack.reconciler import TrackingReconciler
from litestar_shiptrack.status import is_terminal
from litestar_shiptrack.types import TrackingEvent, TrackingStatusResponse

logger = logging.getLogger(__name__)


class TrackingPoller:
    """Handler behind the delayed poll jobs."""

    def __init__(
        self,
        *,
        carrier: CarrierAdapter,
        repository: ShipmentRepository,
        reconciler: TrackingReconciler,
        poll_queue: PollQueue,
        config: ShiptrackConfig,
        clock: Clock = utcnow,
    ) -> None:
        self._carrier = carrier
        self._repository = repository
        self._reconciler = reconciler
        self._poll_queue = poll_queue
        self._config = config
        self._clock = clock

    async def poll_shipment(self, shipment_id: str) -> TrackingStatusResponse | None:
        """Poll the carrier once for ``shipment_id``.

        Carrier failures are re-raised after the check timestamps are
        recorded, so the job queue's retry bookkeeping applies. Nothing is
        rescheduled once the shipment has reached a terminal status.
        """
        try:
            shipment = await self._repository.get_by_id(shipment_id)
        except KeyError:
            logger.info("Poll for missing shipment %s skipped", shipment_id)
            return None

        if not shipment.tracking_number:
            return None
        if is_terminal(TrackingStatus(shipment.tracking_status)):
            logger.info(
                "Poll for shipment %s skipped: already %s",
                shipment_id,
                shipment.tracking_status,
            )
            return None

        try:
            status = await self._fetch(shipment.tracking_number, shipment.carrier)
        except Exception:
            if await self._checkpoint(shipment_id) is None:
                return None
            raise

        if status is None:
            next_check_at = await self._checkpoint(shipment_id)
            if next_check_at is not None:
                await self._poll_queue.enqueue_poll(shipment_id, next_check_at)
            return None

        await self._reconciler.apply_tracking_update(
            shipment.tracking_number,
            TrackingEvent(
                status=status.status,
                detail=status.detail,
                occurred_at=status.occurred_at,
                tracking_url=status.tracking_url,
                carrier=shipment.carrier,
                source=UpdateSource.POLLER,
            ),
            source=UpdateSource.POLLER,
        )
        return status

    async def _fetch(
        self, tracking_number: str, carrier: str | None
    ) -> TrackingStatusResponse | None:
        try:
            async with asyncio.timeout(self._config.carrier_timeout_seconds):
                return await self._carrier.fetch_tracking_status(
                    tracking_number, carrier
                )
        except TimeoutError as exc:
            raise CarrierTimeoutError(
                f"Tracking fetch for {tracking_number} timed out"
            ) from exc

    async def _checkpoint(self, shipment_id: str) -> datetime | None:
        """Record the check and return the next one, or None if polling ended.

        A webhook may finish the shipment while the carrier call is in
        flight; the repository then refuses the write.
        """
        now = self._clock()
        next_check_at = now + self._config.fallback_poll_interval
        recorded = await self._repository.record_poll_checkpoint(
            shipment_id, checked_at=now, next_check_at=next_check_at
        )
        if not recorded:
            logger.info(
                "Shipment %s finished during poll; not rescheduling",
                shipment_id,
            )
            return None
        return next_check_at
