"""Behaviour shared by all carrier adapters."""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Any, ClassVar

from litestar_shiptrack.clock import Clock, parse_timestamp, utcnow
from litestar_shiptrack.enums import WebhookEventType
from litestar_shiptrack.status import normalize_tracking_status
from litestar_shiptrack.types import WebhookEvent

logger = logging.getLogger(__name__)

_TRACKING_EVENT_TYPES = frozenset({"tracking.updated", "tracking_update"})


def str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def compute_webhook_signature(secret: str, timestamp: str, raw_body: bytes) -> str:
    """HMAC-SHA256 hex digest over ``"{timestamp}.{body}"``."""
    message = f"{timestamp}.".encode() + raw_body
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


class BaseCarrierAdapter:
    """Webhook verification and parsing common to every carrier."""

    slug: ClassVar[str] = ""
    display_name: ClassVar[str] = ""

    def __init__(
        self,
        *,
        webhook_secret: str | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self.webhook_secret = webhook_secret
        self._clock = clock
        if not webhook_secret:
            logger.warning(
                "No webhook secret configured for carrier %r; "
                "webhook signatures will NOT be verified",
                self.slug,
            )

    async def aclose(self) -> None:
        """Adapters without network resources have nothing to release."""

    def verify_webhook_signature(
        self,
        raw_body: bytes,
        signature: str | None,
        timestamp: str | None,
    ) -> bool:
        """Check the webhook HMAC in constant time.

        Without a configured secret every request is accepted (fail-open)
        and a warning is logged each time.
        """
        if not self.webhook_secret:
            logger.warning(
                "Accepting unverified webhook for carrier %r: "
                "no webhook secret configured",
                self.slug,
            )
            return True
        if not signature or not timestamp:
            return False
        expected = compute_webhook_signature(
            self.webhook_secret, timestamp, raw_body
        )
        return hmac.compare_digest(expected.encode(), signature.encode())

    def parse_webhook_event(self, payload: Any) -> WebhookEvent:
        """Normalize a decoded webhook body. Never raises."""
        if not isinstance(payload, dict):
            return WebhookEvent(type=WebhookEventType.UNKNOWN, raw=payload)

        event_type = payload.get("type")
        if event_type in _TRACKING_EVENT_TYPES:
            raw_status = payload.get("status", payload.get("trackingStatus"))
            return self._tracking_event(payload, raw_status)

        if event_type == WebhookEventType.LABEL_VOIDED:
            return WebhookEvent(
                type=WebhookEventType.LABEL_VOIDED,
                raw=payload,
                tracking_number=str_or_none(payload.get("trackingNumber")),
                carrier=str_or_none(payload.get("carrier")),
            )

        return self._parse_extra_event(payload)

    def _parse_extra_event(self, payload: dict[str, Any]) -> WebhookEvent:
        """Hook for adapter-specific payload shapes."""
        return WebhookEvent(type=WebhookEventType.UNKNOWN, raw=payload)

    def _tracking_event(
        self, payload: dict[str, Any], raw_status: Any
    ) -> WebhookEvent:
        occurred_at = parse_timestamp(payload.get("occurredAt"))
        return WebhookEvent(
            type=WebhookEventType.TRACKING_UPDATED,
            raw=payload,
            tracking_number=str_or_none(payload.get("trackingNumber")),
            carrier=str_or_none(payload.get("carrier")),
            status=normalize_tracking_status(
                "unknown" if raw_status is None else raw_status
            ),
            detail=str_or_none(payload.get("detail")),
            occurred_at=occurred_at or self._clock(),
            tracking_url=str_or_none(payload.get("trackingUrl")),
        )
