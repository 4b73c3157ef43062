"""Status and event enumerations."""

from enum import StrEnum


class ShipmentStatus(StrEnum):
    """Coarse domain status of a shipment."""

    PREPARING = "PREPARING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    RETURNED = "RETURNED"
    LOST = "LOST"


class TrackingStatus(StrEnum):
    """Fine-grained carrier-reported tracking status."""

    UNKNOWN = "UNKNOWN"
    LABEL_PURCHASED = "LABEL_PURCHASED"
    IN_TRANSIT = "IN_TRANSIT"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    EXCEPTION = "EXCEPTION"


class UpdateSource(StrEnum):
    WEBHOOK = "webhook"
    POLLER = "poller"


class WebhookEventType(StrEnum):
    TRACKING_UPDATED = "tracking.updated"
    LABEL_VOIDED = "label.voided"
    UNKNOWN = "unknown"


class LabelFormat(StrEnum):
    PDF = "PDF"
    ZPL = "ZPL"


class NotificationType(StrEnum):
    ORDER_UPDATED = "ORDER_UPDATED"


class PollJobStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"
