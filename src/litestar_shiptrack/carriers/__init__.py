"""Carrier adapters."""

from litestar_shiptrack.carriers.base import (
    BaseCarrierAdapter,
    compute_webhook_signature,
)
from litestar_shiptrack.carriers.pirateship import PirateShipAdapter
from litestar_shiptrack.carriers.simulated import SimulatedCarrierAdapter

__all__ = [
    "BaseCarrierAdapter",
    "PirateShipAdapter",
    "SimulatedCarrierAdapter",
    "compute_webhook_signature",
]
