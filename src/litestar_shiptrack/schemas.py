"""Request/response schemas for HTTP endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from litestar_shiptrack.enums import LabelFormat
from litestar_shiptrack.types import LabelPurchaseResult, Parcel, RateQuote


class CamelModel(BaseModel):
    """Accepts and emits camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ParcelSchema(CamelModel):
    length_inches: float = Field(gt=0)
    width_inches: float = Field(gt=0)
    height_inches: float = Field(gt=0)
    weight_oz: float = Field(gt=0)

    def to_parcel(self) -> Parcel:
        return Parcel(
            length_inches=self.length_inches,
            width_inches=self.width_inches,
            height_inches=self.height_inches,
            weight_oz=self.weight_oz,
        )


class RateQuoteRequest(CamelModel):
    order_id: str = Field(min_length=1)
    parcel: ParcelSchema
    seller_id: str | None = None


class LabelPurchaseRequest(CamelModel):
    order_id: str = Field(min_length=1)
    rate_id: str = Field(min_length=1)
    parcel: ParcelSchema
    seller_id: str | None = None
    label_format: LabelFormat | None = None


class RateQuoteSchema(CamelModel):
    id: str
    carrier: str
    service: str
    amount: float
    currency: str
    delivery_days: int | None = None
    delivery_date: str | None = None

    @classmethod
    def from_quote(cls, quote: RateQuote) -> RateQuoteSchema:
        return cls(
            id=quote.id,
            carrier=quote.carrier,
            service=quote.service,
            amount=float(quote.amount),
            currency=quote.currency,
            delivery_days=quote.delivery_days,
            delivery_date=quote.delivery_date,
        )


class RateQuoteResponse(CamelModel):
    rates: list[RateQuoteSchema]


class LabelPurchaseResponse(CamelModel):
    """Serialized label purchase payload."""

    shipment_id: str
    tracking_number: str
    carrier: str
    service: str
    label_url: str
    amount: float
    currency: str

    @classmethod
    def from_result(cls, result: LabelPurchaseResult) -> LabelPurchaseResponse:
        return cls(
            shipment_id=result.shipment_id,
            tracking_number=result.tracking_number,
            carrier=result.carrier,
            service=result.service,
            label_url=result.label_url,
            amount=float(result.amount),
            currency=result.currency,
        )


class ShipmentResponse(CamelModel):
    """Current tracking state of an order's shipment."""

    id: str
    order_id: str
    status: str
    tracking_status: str
    tracking_number: str | None = None
    carrier: str | None = None
    service_level: str | None = None
    tracking_status_detail: str | None = None
    tracking_url: str | None = None
    tracking_last_event_at: datetime | None = None
    tracking_last_checked_at: datetime | None = None
    tracking_next_check_at: datetime | None = None
    label_url: str | None = None

    @classmethod
    def from_shipment(cls, shipment: Any) -> ShipmentResponse:
        return cls(
            id=str(shipment.id),
            order_id=str(shipment.order_id),
            status=str(shipment.status),
            tracking_status=str(shipment.tracking_status),
            tracking_number=shipment.tracking_number,
            carrier=shipment.carrier,
            service_level=shipment.service_level,
            tracking_status_detail=shipment.tracking_status_detail,
            tracking_url=shipment.tracking_url,
            tracking_last_event_at=shipment.tracking_last_event_at,
            tracking_last_checked_at=shipment.tracking_last_checked_at,
            tracking_next_check_at=shipment.tracking_next_check_at,
            label_url=shipment.label_url,
        )


class WebhookAck(BaseModel):
    received: bool = True
