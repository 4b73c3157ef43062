"""Deterministic carrier simulator for environments without credentials."""

from __future__ import annotations

import threading
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, ClassVar
from uuid import uuid4

from litestar_shiptrack.carriers.base import BaseCarrierAdapter, str_or_none
from litestar_shiptrack.clock import Clock, utcnow
from litestar_shiptrack.enums import LabelFormat, TrackingStatus, WebhookEventType
from litestar_shiptrack.status import humanize_status, normalize_tracking_status
from litestar_shiptrack.types import (
    Address,
    LabelPurchase,
    Parcel,
    RateQuote,
    TrackingStatusResponse,
    TrackingSubscription,
    WebhookEvent,
)

DEFAULT_TRANSITION_INTERVAL = timedelta(minutes=5)

# Forward progression used by fetch_tracking_status; DELIVERED is absorbing.
_NEXT_STATUS: dict[TrackingStatus, TrackingStatus] = {
    TrackingStatus.LABEL_PURCHASED: TrackingStatus.IN_TRANSIT,
    TrackingStatus.IN_TRANSIT: TrackingStatus.OUT_FOR_DELIVERY,
    TrackingStatus.OUT_FOR_DELIVERY: TrackingStatus.DELIVERED,
}

_FALLBACK_RATE = ("MockCarrier", "Standard", Decimal("7.50"), "USD")


@dataclass
class SimulatedTrackingState:
    status: TrackingStatus
    last_transition_at: datetime


def _cents(value: float) -> Decimal:
    return Decimal(f"{value:.2f}")


# 4x6 inch thermal label, in PDF points
LABEL_WIDTH = 288
LABEL_HEIGHT = 432


def _pdf_text(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
    return f"({escaped.encode('latin-1', 'replace').decode('latin-1')})"


def _label_stream(lines: Sequence[str]) -> bytes:
    ops = [f"8 8 {LABEL_WIDTH - 16} {LABEL_HEIGHT - 16} re S"]
    ops.append(f"BT /F1 16 Tf 18 TL 20 {LABEL_HEIGHT - 40} Td")
    for number, line in enumerate(lines):
        if number == 1:
            ops.append("/F1 11 Tf 14 TL")
        ops.append(f"{_pdf_text(line)} Tj T*")
    ops.append("ET")
    return "\n".join(ops).encode("latin-1")


def build_label_pdf(lines: Sequence[str]) -> bytes:
    """Render a one-page 4x6 label; the first line is the headline."""
    stream = _label_stream(lines)
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R "
        + f"/MediaBox [0 0 {LABEL_WIDTH} {LABEL_HEIGHT}] ".encode("ascii")
        + b"/Resources << /Font << /F1 5 0 R >> >> /Contents 4 0 R >>",
        f"<< /Length {len(stream)} >>\nstream\n".encode("ascii")
        + stream
        + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica-Bold >>",
    ]

    body = bytearray(b"%PDF-1.4\n")
    xref = [b"0000000000 65535 f "]
    for number, obj in enumerate(objects, start=1):
        xref.append(f"{len(body):010} 00000 n ".encode("ascii"))
        body += f"{number} 0 obj\n".encode("ascii") + obj + b"\nendobj\n"

    startxref = len(body)
    body += f"xref\n0 {len(xref)}\n".encode("ascii")
    body += b"\n".join(xref) + b"\n"
    body += (
        f"trailer\n<< /Size {len(xref)} /Root 1 0 R >>\n"
        f"startxref\n{startxref}\n%%EOF\n"
    ).encode("ascii")
    return bytes(body)


def _label_lines(
    carrier: str, service: str, tracking_number: str, to_address: Address
) -> list[str]:
    locality = " ".join(
        part
        for part in (to_address.city, to_address.state, to_address.postal_code)
        if part
    )
    return [
        f"{carrier} {service}".upper(),
        f"TRACKING # {tracking_number}",
        "",
        "SHIP TO:",
        *(
            line
            for line in (
                to_address.name,
                to_address.company,
                to_address.street1,
                to_address.street2,
                locality,
                to_address.country,
            )
            if line
        ),
    ]


class SimulatedCarrierAdapter(BaseCarrierAdapter):
    """Offline carrier whose parcels advance one step per interval.

    State lives on the instance, so each process (or test) owns its own
    simulated world. Access is serialized with a lock because poll jobs for
    the same tracking number may run concurrently.
    """

    slug: ClassVar[str] = "pirateship"
    display_name: ClassVar[str] = "Pirate Ship (simulated)"

    def __init__(
        self,
        *,
        transition_interval: timedelta = DEFAULT_TRANSITION_INTERVAL,
        webhook_secret: str | None = None,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(webhook_secret=webhook_secret, clock=clock)
        self.transition_interval = transition_interval
        self._state: dict[str, SimulatedTrackingState] = {}
        self._lock = threading.Lock()

    def get_state(self, tracking_number: str) -> SimulatedTrackingState | None:
        with self._lock:
            return self._state.get(tracking_number)

    def seed(
        self,
        tracking_number: str,
        status: TrackingStatus = TrackingStatus.LABEL_PURCHASED,
        at: datetime | None = None,
    ) -> None:
        """Start (or restart) simulating a tracking number."""
        with self._lock:
            self._state[tracking_number] = SimulatedTrackingState(
                status=status, last_transition_at=at or self._clock()
            )

    def _build_rates(self, parcel: Parcel) -> list[RateQuote]:
        volumetric_weight = (
            parcel.length_inches * parcel.width_inches * parcel.height_inches
        ) / 139
        billable_weight = max(parcel.weight_oz / 16, volumetric_weight)
        base = max(4.5, billable_weight * 0.6 + 3)
        return [
            RateQuote(
                id="mock-usps-priority",
                carrier="USPS",
                service="Priority Mail",
                amount=_cents(base),
                currency="USD",
                delivery_days=3,
            ),
            RateQuote(
                id="mock-ups-ground",
                carrier="UPS",
                service="Ground",
                amount=_cents(base + 2.1),
                currency="USD",
                delivery_days=5,
            ),
            RateQuote(
                id="mock-fedex-2day",
                carrier="FedEx",
                service="2Day",
                amount=_cents(base + 6.75),
                currency="USD",
                delivery_days=2,
            ),
        ]

    async def quote_rates(
        self, from_address: Address, to_address: Address, parcel: Parcel
    ) -> list[RateQuote]:
        return self._build_rates(parcel)

    async def purchase_label(
        self,
        rate_id: str,
        from_address: Address,
        to_address: Address,
        parcel: Parcel,
        label_format: LabelFormat = LabelFormat.PDF,
        reference: str | None = None,
    ) -> LabelPurchase:
        rate = next(
            (r for r in self._build_rates(parcel) if r.id == rate_id), None
        )
        if rate is not None:
            carrier, service, amount, currency = (
                rate.carrier,
                rate.service,
                rate.amount,
                rate.currency,
            )
        else:
            carrier, service, amount, currency = _FALLBACK_RATE

        tracking_number = f"PS{uuid4().hex[:10].upper()}"
        self.seed(tracking_number)
        return LabelPurchase(
            tracking_number=tracking_number,
            carrier=carrier,
            service=service,
            label_bytes=build_label_pdf(
                _label_lines(carrier, service, tracking_number, to_address)
            ),
            label_format=LabelFormat.PDF,
            amount=amount,
            currency=currency,
            provider_reference=f"mock-{tracking_number}",
            tracking_url=f"https://example.test/track/{tracking_number}",
        )

    async def subscribe_tracking(
        self,
        tracking_number: str,
        carrier: str,
        reference: str | None = None,
    ) -> TrackingSubscription:
        with self._lock:
            if tracking_number not in self._state:
                self._state[tracking_number] = SimulatedTrackingState(
                    status=TrackingStatus.LABEL_PURCHASED,
                    last_transition_at=self._clock(),
                )
        return TrackingSubscription(subscription_id=f"mock-{tracking_number}")

    async def fetch_tracking_status(
        self, tracking_number: str, carrier: str | None = None
    ) -> TrackingStatusResponse | None:
        now = self._clock()
        with self._lock:
            state = self._state.get(tracking_number)
            if state is None:
                return None
            if now - state.last_transition_at > self.transition_interval:
                state.status = _NEXT_STATUS.get(state.status, state.status)
                state.last_transition_at = now
            status = state.status

        return TrackingStatusResponse(
            tracking_number=tracking_number,
            status=status,
            detail=f"Mock status: {humanize_status(status)}",
            occurred_at=now,
            tracking_url=f"https://example.test/track/{tracking_number}",
        )

    def _parse_extra_event(self, payload: dict[str, Any]) -> WebhookEvent:
        mock_event = payload.get("mockEvent")
        if not isinstance(mock_event, str):
            return super()._parse_extra_event(payload)
        return WebhookEvent(
            type=WebhookEventType.TRACKING_UPDATED,
            raw=payload,
            tracking_number=str_or_none(payload.get("trackingNumber")),
            carrier=str_or_none(payload.get("carrier")),
            status=normalize_tracking_status(mock_event),
            detail=str_or_none(payload.get("detail")),
            occurred_at=self._clock(),
            tracking_url=str_or_none(payload.get("trackingUrl")),
        )
