"""Shipment tracking and fulfillment state machine for Litestar."""

from typing import TYPE_CHECKING

__version__ = "0.1.0"

__all__ = [
    "CarrierAdapter",
    "CarrierError",
    "ConfigurationError",
    "LabelPurchaseOrchestrator",
    "OrderNotFoundError",
    "ShipmentNotFoundError",
    "ShipmentStatus",
    "ShippingServices",
    "ShiptrackConfig",
    "SimulatedCarrierAdapter",
    "TrackingEvent",
    "TrackingReconciler",
    "TrackingStatus",
    "__version__",
    "create_carrier_adapter",
    "create_shipping_router",
    "map_tracking_to_shipment_status",
]

if TYPE_CHECKING:
    from litestar_shiptrack.carriers.simulated import SimulatedCarrierAdapter
    from litestar_shiptrack.config import ShiptrackConfig
    from litestar_shiptrack.enums import ShipmentStatus, TrackingStatus
    from litestar_shiptrack.exceptions import (
        CarrierError,
        ConfigurationError,
        OrderNotFoundError,
        ShipmentNotFoundError,
    )
    from litestar_shiptrack.orchestrator import LabelPurchaseOrchestrator
    from litestar_shiptrack.plugin import create_shipping_router
    from litestar_shiptrack.protocols import CarrierAdapter
    from litestar_shiptrack.reconciler import TrackingReconciler
    from litestar_shiptrack.registry import create_carrier_adapter
    from litestar_shiptrack.services import ShippingServices
    from litestar_shiptrack.status import map_tracking_to_shipment_status
    from litestar_shiptrack.types import TrackingEvent

_LAZY_IMPORTS = {
    "CarrierAdapter": "litestar_shiptrack.protocols",
    "CarrierError": "litestar_shiptrack.exceptions",
    "ConfigurationError": "litestar_shiptrack.exceptions",
    "LabelPurchaseOrchestrator": "litestar_shiptrack.orchestrator",
    "OrderNotFoundError": "litestar_shiptrack.exceptions",
    "ShipmentNotFoundError": "litestar_shiptrack.exceptions",
    "ShipmentStatus": "litestar_shiptrack.enums",
    "ShippingServices": "litestar_shiptrack.services",
    "ShiptrackConfig": "litestar_shiptrack.config",
    "SimulatedCarrierAdapter": "litestar_shiptrack.carriers.simulated",
    "TrackingEvent": "litestar_shiptrack.types",
    "TrackingReconciler": "litestar_shiptrack.reconciler",
    "TrackingStatus": "litestar_shiptrack.enums",
    "create_carrier_adapter": "litestar_shiptrack.registry",
    "create_shipping_router": "litestar_shiptrack.plugin",
    "map_tracking_to_shipment_status": "litestar_shiptrack.status",
}


def __getattr__(name: str):
    # Lazy imports to avoid loading all submodules on package import.
    module_name = _LAZY_IMPORTS.get(name)
    if module_name is None:
        raise AttributeError(
            f"module 'litestar_shiptrack' has no attribute {name!r}"
        )
    from importlib import import_module

    return getattr(import_module(module_name), name)
