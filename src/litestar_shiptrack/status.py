"""Tracking status normalization and shipment status mapping."""

from __future__ import annotations

from litestar_shiptrack.enums import ShipmentStatus, TrackingStatus

# Checked in order; the first rule with a matching substring wins.
_NORMALIZATION_RULES: tuple[tuple[tuple[str, ...], TrackingStatus], ...] = (
    (("out_for_delivery", "out-for-delivery"), TrackingStatus.OUT_FOR_DELIVERY),
    (("in_transit", "in-transit", "transit"), TrackingStatus.IN_TRANSIT),
    (("label", "purchased", "created"), TrackingStatus.LABEL_PURCHASED),
    (("deliver",), TrackingStatus.DELIVERED),
    (("exception", "failed", "return"), TrackingStatus.EXCEPTION),
)

_SHIPMENT_STATUS_BY_TRACKING: dict[TrackingStatus, ShipmentStatus] = {
    TrackingStatus.UNKNOWN: ShipmentStatus.PREPARING,
    TrackingStatus.LABEL_PURCHASED: ShipmentStatus.PREPARING,
    TrackingStatus.IN_TRANSIT: ShipmentStatus.SHIPPED,
    TrackingStatus.OUT_FOR_DELIVERY: ShipmentStatus.SHIPPED,
    TrackingStatus.DELIVERED: ShipmentStatus.DELIVERED,
    TrackingStatus.EXCEPTION: ShipmentStatus.LOST,
}

TERMINAL_TRACKING_STATUSES = frozenset(
    {TrackingStatus.DELIVERED, TrackingStatus.EXCEPTION}
)


def normalize_tracking_status(raw: object) -> TrackingStatus:
    """Map a free-form carrier status string to a TrackingStatus.

    Matching is a case-insensitive substring test, so ``"Out_For_Delivery
    (in transit hub)"`` is OUT_FOR_DELIVERY and not IN_TRANSIT.
    """
    normalized = str(raw).lower()
    for needles, status in _NORMALIZATION_RULES:
        if any(needle in normalized for needle in needles):
            return status
    return TrackingStatus.UNKNOWN


def map_tracking_to_shipment_status(
    tracking_status: TrackingStatus,
) -> ShipmentStatus:
    """Derive the coarse shipment status from a tracking status."""
    return _SHIPMENT_STATUS_BY_TRACKING.get(
        TrackingStatus(tracking_status), ShipmentStatus.PREPARING
    )


def is_terminal(tracking_status: TrackingStatus) -> bool:
    """Whether no further polling should happen after this status."""
    return tracking_status in TERMINAL_TRACKING_STATUSES


def humanize_status(status: str) -> str:
    """``OUT_FOR_DELIVERY`` -> ``out for delivery``."""
    return str(status).replace("_", " ").lower()
