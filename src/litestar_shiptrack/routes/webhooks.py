"""Carrier webhook endpoint."""

from __future__ import annotations

import json
import logging
from typing import Annotated, ClassVar

from litestar import Controller, Request, post
from litestar.params import Dependency

from litestar_shiptrack.config import ShiptrackConfig
from litestar_shiptrack.enums import UpdateSource, WebhookEventType
from litestar_shiptrack.exceptions import (
    InvalidSignatureError,
    ShippingValidationError,
)
from litestar_shiptrack.protocols import CarrierAdapter
from litestar_shiptrack.reconciler import TrackingReconciler
from litestar_shiptrack.schemas import WebhookAck
from litestar_shiptrack.types import TrackingEvent

logger = logging.getLogger(__name__)


class WebhookController(Controller):
    """Carrier push notifications."""

    path = "/shipping/webhook"
    tags: ClassVar[list[str]] = ["webhooks"]

    @post("/", status_code=200)
    async def handle_webhook(
        self,
        request: Request,
        config: Annotated[ShiptrackConfig, Dependency(skip_validation=True)],
        carrier: Annotated[CarrierAdapter, Dependency(skip_validation=True)],
        reconciler: Annotated[
            TrackingReconciler, Dependency(skip_validation=True)
        ],
    ) -> WebhookAck:
        """Verify, parse and apply a carrier tracking webhook.

        Verified requests are acknowledged even when ignored, so carriers do
        not retry events this service deliberately drops.
        """
        raw_body = await request.body()
        signature = request.headers.get(config.signature_header)
        timestamp = request.headers.get(config.timestamp_header)

        if not carrier.verify_webhook_signature(raw_body, signature, timestamp):
            logger.warning(
                "Webhook signature verification failed (client %s)",
                request.client.host if request.client else "unknown",
            )
            raise InvalidSignatureError("Invalid signature")

        try:
            payload = json.loads(raw_body)
        except ValueError as exc:
            raise ShippingValidationError("Invalid JSON payload") from exc

        event = carrier.parse_webhook_event(payload)
        if (
            event.type == WebhookEventType.TRACKING_UPDATED
            and event.tracking_number
            and event.status
        ):
            await reconciler.apply_tracking_update(
                event.tracking_number,
                TrackingEvent(
                    status=event.status,
                    detail=event.detail,
                    occurred_at=event.occurred_at,
                    tracking_url=event.tracking_url,
                    carrier=event.carrier,
                    source=UpdateSource.WEBHOOK,
                ),
                source=UpdateSource.WEBHOOK,
            )
        else:
            logger.info("Acknowledged ignored webhook event %s", event.type)

        return WebhookAck()
