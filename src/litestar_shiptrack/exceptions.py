"""Exception hierarchy and HTTP mapping for litestar-shiptrack."""

from __future__ import annotations

import logging
from typing import Any

from litestar import Request, Response

logger = logging.getLogger(__name__)


class ShiptrackError(Exception):
    """Base class for shipment tracking errors."""


class ShippingValidationError(ShiptrackError):
    """Request is well-formed but cannot be fulfilled as given."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class OrderNotFoundError(ShiptrackError):
    """Order with given ID was not found."""

    def __init__(self, order_id: str) -> None:
        self.order_id = order_id
        super().__init__(f"Order {order_id!r} not found")


class ShipmentNotFoundError(ShiptrackError):
    """Shipment with given ID was not found."""

    def __init__(self, shipment_id: str) -> None:
        self.shipment_id = shipment_id
        super().__init__(f"Shipment {shipment_id!r} not found")


class SellerMismatchError(ShiptrackError):
    """Caller acts as a seller who does not own the order."""

    def __init__(self, order_id: str, seller_id: str) -> None:
        self.order_id = order_id
        self.seller_id = seller_id
        super().__init__(f"Seller {seller_id!r} does not own order {order_id!r}")


class CarrierError(ShiptrackError):
    """Carrier API failed or answered with something unusable.

    Transient by nature; the poll queue retries these with backoff.
    """


class CarrierTimeoutError(CarrierError):
    """Carrier API did not answer within the configured timeout."""


class InvalidSignatureError(ShiptrackError):
    """Webhook signature did not verify."""


class TrackingSubscriptionFailure(ShiptrackError):
    """Push tracking subscription failed; polling still covers the shipment."""

    def __init__(self, tracking_number: str, cause: Exception) -> None:
        self.tracking_number = tracking_number
        self.cause = cause
        super().__init__(
            f"Tracking subscription for {tracking_number!r} failed: {cause}"
        )


class ConfigurationError(ShiptrackError):
    """A required component is not configured."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


def _error_response(
    request: Request,
    detail: str,
    code: str,
    status_code: int,
    extra: dict[str, Any] | None = None,
) -> Response:
    content: dict[str, Any] = {"detail": detail, "code": code}
    if extra:
        content["extra"] = extra
    return Response(content=content, status_code=status_code)


def handle_validation_error(
    request: Request, exc: ShippingValidationError
) -> Response:
    """Map ShippingValidationError to 400."""
    extra = {"field": exc.field} if exc.field else None
    return _error_response(request, str(exc), "validation_error", 400, extra)


def handle_order_not_found(
    request: Request, exc: OrderNotFoundError
) -> Response:
    """Map OrderNotFoundError to 404."""
    return _error_response(request, str(exc), "not_found", 404)


def handle_shipment_not_found(
    request: Request, exc: ShipmentNotFoundError
) -> Response:
    """Map ShipmentNotFoundError to 404."""
    return _error_response(request, str(exc), "not_found", 404)


def handle_seller_mismatch(
    request: Request, exc: SellerMismatchError
) -> Response:
    """Map SellerMismatchError to 403."""
    return _error_response(request, str(exc), "seller_mismatch", 403)


def handle_carrier_error(request: Request, exc: CarrierError) -> Response:
    """Map CarrierError to 502."""
    logger.warning("Carrier call failed for %s: %s", request.url.path, exc)
    return _error_response(request, str(exc), "carrier_error", 502)


def handle_invalid_signature(
    request: Request, exc: InvalidSignatureError
) -> Response:
    """Map InvalidSignatureError to 401."""
    logger.warning(
        "Rejected request with invalid signature on %s", request.url.path
    )
    return _error_response(request, str(exc), "invalid_signature", 401)


def handle_configuration_error(
    request: Request, exc: ConfigurationError
) -> Response:
    """Map ConfigurationError to 500."""
    return _error_response(request, str(exc), "configuration_error", 500)


def handle_shiptrack_error(request: Request, exc: ShiptrackError) -> Response:
    """Map generic ShiptrackError to 400."""
    return _error_response(request, str(exc), "shiptrack_error", 400)


EXCEPTION_HANDLERS = {
    ShippingValidationError: handle_validation_error,
    OrderNotFoundError: handle_order_not_found,
    ShipmentNotFoundError: handle_shipment_not_found,
    SellerMismatchError: handle_seller_mismatch,
    CarrierError: handle_carrier_error,
    InvalidSignatureError: handle_invalid_signature,
    ConfigurationError: handle_configuration_error,
    ShiptrackError: handle_shiptrack_error,
}
