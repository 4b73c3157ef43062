"""Pirate Ship HTTP carrier adapter."""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import asdict
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar
from urllib.parse import quote
from uuid import uuid4

import httpx

from litestar_shiptrack.carriers.base import BaseCarrierAdapter, str_or_none
from litestar_shiptrack.clock import Clock, parse_timestamp, utcnow
from litestar_shiptrack.enums import LabelFormat
from litestar_shiptrack.exceptions import CarrierError, CarrierTimeoutError
from litestar_shiptrack.status import normalize_tracking_status
from litestar_shiptrack.types import (
    Address,
    LabelPurchase,
    Parcel,
    RateQuote,
    TrackingStatusResponse,
    TrackingSubscription,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.pirateship.com"


def _decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value if value is not None else 0))
    except InvalidOperation as exc:
        raise CarrierError(f"Invalid amount in carrier response: {value!r}") from exc


def _delivery_days(value: Any) -> int | None:
    """Whole-day estimate, or None for ranges like ``"2-3"`` and blanks."""
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, int | float):
            return int(value)
        return int(str(value).strip())
    except (ValueError, OverflowError):
        logger.debug("Ignoring non-numeric delivery estimate %r", value)
        return None


def _map_address(address: Address) -> dict[str, Any]:
    data = asdict(address)
    return {
        "name": data["name"],
        "company": data["company"],
        "street1": data["street1"],
        "street2": data["street2"],
        "city": data["city"],
        "state": data["state"],
        "postalCode": data["postal_code"],
        "country": data["country"],
        "phone": data["phone"],
        "email": data["email"],
    }


def _map_parcel(parcel: Parcel) -> dict[str, float]:
    return {
        "length": parcel.length_inches,
        "width": parcel.width_inches,
        "height": parcel.height_inches,
        "weightOz": parcel.weight_oz,
    }


class PirateShipAdapter(BaseCarrierAdapter):
    """Carrier adapter talking to the Pirate Ship REST API."""

    slug: ClassVar[str] = "pirateship"
    display_name: ClassVar[str] = "Pirate Ship"

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        webhook_secret: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(webhook_secret=webhook_secret, clock=clock)
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {api_key}",
            },
        )

    async def aclose(self) -> None:
        await self._client.aclose()
        logger.debug("Closed Pirate Ship HTTP client")

    async def _request(
        self,
        method: str,
        path: str,
        *,
        action: str,
        json: dict[str, Any] | None = None,
        allow_not_found: bool = False,
    ) -> dict[str, Any] | None:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.TimeoutException as exc:
            raise CarrierTimeoutError(f"Pirate Ship {action} timed out") from exc
        except httpx.HTTPError as exc:
            raise CarrierError(f"Pirate Ship {action} failed: {exc}") from exc

        if allow_not_found and response.status_code == 404:
            return None
        if response.is_error:
            raise CarrierError(
                f"Pirate Ship {action} failed: "
                f"{response.status_code} {response.reason_phrase}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise CarrierError(
                f"Pirate Ship {action} returned invalid JSON"
            ) from exc
        if not isinstance(payload, dict):
            raise CarrierError(f"Pirate Ship {action} returned {payload!r}")
        return payload

    async def quote_rates(
        self, from_address: Address, to_address: Address, parcel: Parcel
    ) -> list[RateQuote]:
        payload = await self._request(
            "POST",
            "/v1/rates/quotes",
            action="rate quote",
            json={
                "from": _map_address(from_address),
                "to": _map_address(to_address),
                "parcel": _map_parcel(parcel),
            },
        )
        rates = payload.get("rates") if payload else None
        if not isinstance(rates, list):
            return []

        quotes = []
        for rate in rates:
            if not isinstance(rate, dict):
                continue
            quotes.append(
                RateQuote(
                    id=str(rate.get("id") or rate.get("rateId") or uuid4()),
                    carrier=str(rate.get("carrier") or "Unknown"),
                    service=str(
                        rate.get("service") or rate.get("serviceName") or "Standard"
                    ),
                    amount=_decimal(rate.get("amount", rate.get("price"))),
                    currency=str(rate.get("currency") or "USD"),
                    delivery_days=_delivery_days(rate.get("deliveryDays")),
                    delivery_date=str_or_none(rate.get("deliveryDate")),
                )
            )
        return quotes

    async def purchase_label(
        self,
        rate_id: str,
        from_address: Address,
        to_address: Address,
        parcel: Parcel,
        label_format: LabelFormat = LabelFormat.PDF,
        reference: str | None = None,
    ) -> LabelPurchase:
        payload = await self._request(
            "POST",
            "/v1/labels",
            action="label purchase",
            json={
                "rateId": rate_id,
                "from": _map_address(from_address),
                "to": _map_address(to_address),
                "parcel": _map_parcel(parcel),
                "labelFormat": str(label_format),
                "reference": reference,
            },
        )
        if payload is None:
            raise CarrierError("Pirate Ship label purchase returned no body")

        label_field = payload.get("label")
        if isinstance(label_field, dict):
            label_field = label_field.get("data")
        try:
            label_bytes = base64.b64decode(str(label_field or ""))
        except (binascii.Error, ValueError) as exc:
            raise CarrierError("Pirate Ship returned an undecodable label") from exc

        try:
            returned_format = LabelFormat(payload.get("labelFormat") or label_format)
        except ValueError:
            returned_format = label_format

        return LabelPurchase(
            tracking_number=str(
                payload.get("trackingNumber")
                or payload.get("tracking_number")
                or uuid4()
            ),
            carrier=str(
                payload.get("carrier") or payload.get("carrier_name") or "Unknown"
            ),
            service=str(
                payload.get("service") or payload.get("service_name") or "Standard"
            ),
            label_bytes=label_bytes,
            label_format=returned_format,
            amount=_decimal(payload.get("amount", payload.get("price"))),
            currency=str(payload.get("currency") or "USD"),
            provider_reference=str(
                payload.get("id") or payload.get("labelId") or uuid4()
            ),
            tracking_url=str_or_none(payload.get("trackingUrl")),
        )

    async def subscribe_tracking(
        self,
        tracking_number: str,
        carrier: str,
        reference: str | None = None,
    ) -> TrackingSubscription:
        payload = await self._request(
            "POST",
            "/v1/tracking/subscriptions",
            action="tracking subscription",
            json={
                "trackingNumber": tracking_number,
                "carrier": carrier,
                "reference": reference,
            },
        )
        if payload is None:
            raise CarrierError(
                "Pirate Ship tracking subscription returned no body"
            )
        return TrackingSubscription(
            subscription_id=str(
                payload.get("id") or payload.get("subscriptionId") or uuid4()
            )
        )

    async def fetch_tracking_status(
        self, tracking_number: str, carrier: str | None = None
    ) -> TrackingStatusResponse | None:
        payload = await self._request(
            "GET",
            f"/v1/tracking/{quote(tracking_number, safe='')}",
            action="tracking fetch",
            allow_not_found=True,
        )
        if payload is None:
            logger.debug("No tracking data yet for %s", tracking_number)
            return None

        raw_status = payload.get("status", payload.get("trackingStatus"))
        return TrackingStatusResponse(
            tracking_number=tracking_number,
            status=normalize_tracking_status(
                "unknown" if raw_status is None else raw_status
            ),
            detail=str_or_none(payload.get("detail")),
            occurred_at=parse_timestamp(payload.get("timestamp")),
            tracking_url=str_or_none(payload.get("trackingUrl")),
        )
