"""Rate quote and label purchase endpoints."""

from __future__ import annotations

import logging
from typing import Annotated, Any, ClassVar

from litestar import Controller, get, post
from litestar.params import Dependency

from litestar_shiptrack.enums import LabelFormat
from litestar_shiptrack.orchestrator import LabelPurchaseOrchestrator
from litestar_shiptrack.schemas import (
    LabelPurchaseRequest,
    LabelPurchaseResponse,
    RateQuoteRequest,
    RateQuoteResponse,
    RateQuoteSchema,
)

logger = logging.getLogger(__name__)


class ShippingController(Controller):
    """Seller-facing shipping endpoints."""

    path = "/shipping"
    tags: ClassVar[list[str]] = ["shipping"]

    @get("/health")
    async def shipping_health(self) -> dict[str, str]:
        """Healthcheck endpoint for shipping routes."""
        return {"status": "ok"}

    @post("/rates", status_code=200)
    async def quote_rates(
        self,
        data: RateQuoteRequest,
        orchestrator: Annotated[
            LabelPurchaseOrchestrator, Dependency(skip_validation=True)
        ],
    ) -> dict[str, Any]:
        """Quote carrier rates for shipping an order."""
        quotes = await orchestrator.quote_rates(
            data.order_id, data.parcel.to_parcel(), seller_id=data.seller_id
        )
        return RateQuoteResponse(
            rates=[RateQuoteSchema.from_quote(q) for q in quotes]
        ).to_json()

    @post("/labels", status_code=200)
    async def purchase_label(
        self,
        data: LabelPurchaseRequest,
        orchestrator: Annotated[
            LabelPurchaseOrchestrator, Dependency(skip_validation=True)
        ],
    ) -> dict[str, Any]:
        """Buy a label for an order and start tracking it."""
        result = await orchestrator.purchase_label(
            data.order_id,
            data.rate_id,
            data.parcel.to_parcel(),
            seller_id=data.seller_id,
            label_format=data.label_format or LabelFormat.PDF,
        )
        return LabelPurchaseResponse.from_result(result).to_json()
