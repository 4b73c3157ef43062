"""Shipment read endpoints."""

from __future__ import annotations

from typing import Annotated, Any, ClassVar

from litestar import Controller, get
from litestar.params import Dependency

from litestar_shiptrack.exceptions import ShipmentNotFoundError
from litestar_shiptrack.protocols import ShipmentRepository
from litestar_shiptrack.schemas import ShipmentResponse


class ShipmentController(Controller):
    """Shipment tracking state."""

    path = "/shipments"
    tags: ClassVar[list[str]] = ["shipments"]

    @get("/{order_id:str}")
    async def get_shipment(
        self,
        order_id: str,
        repository: Annotated[
            ShipmentRepository, Dependency(skip_validation=True)
        ],
    ) -> dict[str, Any]:
        """Return the tracking state of an order's shipment."""
        shipment = await repository.find_by_order_id(order_id)
        if shipment is None:
            raise ShipmentNotFoundError(order_id)
        return ShipmentResponse.from_shipment(shipment).to_json()
