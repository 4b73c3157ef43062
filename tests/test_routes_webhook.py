"""Webhook route tests."""

from __future__ import annotations

import json
from collections.abc import Iterator
from unittest.mock import AsyncMock

import pytest
from litestar import Litestar
from litestar.testing import TestClient

from litestar_shiptrack.carriers.base import compute_webhook_signature
from litestar_shiptrack.carriers.simulated import SimulatedCarrierAdapter
from litestar_shiptrack.config import ShiptrackConfig
from litestar_shiptrack.enums import ShipmentStatus, TrackingStatus
from litestar_shiptrack.plugin import create_shipping_router
from litestar_shiptrack.services import ShippingServices

SECRET = "whsec_test"
TIMESTAMP = "1768478400"


def _signed_headers(body: bytes, secret: str = SECRET) -> dict[str, str]:
    return {
        "content-type": "application/json",
        "x-pirateship-signature": compute_webhook_signature(
            secret, TIMESTAMP, body
        ),
        "x-pirateship-timestamp": TIMESTAMP,
    }


def _body(**payload) -> bytes:
    return json.dumps(payload).encode()


@pytest.fixture()
def signed_services(
    repository, orders, timeline, notifier, payouts, storage, job_store, clock
) -> ShippingServices:
    config = ShiptrackConfig(use_simulated=True, webhook_secret=SECRET)
    return ShippingServices.build(
        config=config,
        carrier=SimulatedCarrierAdapter(webhook_secret=SECRET, clock=clock),
        repository=repository,
        orders=orders,
        timeline=timeline,
        notifier=notifier,
        payouts=payouts,
        storage=storage,
        job_store=job_store,
        clock=clock,
    )


@pytest.fixture()
def signed_client(signed_services) -> Iterator[TestClient]:
    app = Litestar(
        route_handlers=[create_shipping_router(services=signed_services)]
    )
    with TestClient(app=app) as tc:
        yield tc


class TestWebhookRoute:
    """Test POST /shipping/webhook."""

    def test_valid_signature_applies_update(
        self, signed_client, tracked_shipment, payouts
    ) -> None:
        body = _body(
            type="tracking.updated",
            trackingNumber="TRK1",
            status="DELIVERED",
            detail="Left at front door",
            occurredAt="2026-01-15T11:00:00Z",
        )
        resp = signed_client.post(
            "/shipping/webhook", content=body, headers=_signed_headers(body)
        )

        assert resp.status_code == 200
        assert resp.json() == {"received": True}
        assert tracked_shipment.status == ShipmentStatus.DELIVERED
        assert tracked_shipment.tracking_status_detail == "Left at front door"
        payouts.release_payout_for_order.assert_awaited_once_with("order-1")

    def test_invalid_signature_returns_401(
        self, signed_client, signed_services, tracked_shipment
    ) -> None:
        signed_services.reconciler.apply_tracking_update = AsyncMock()
        body = _body(
            type="tracking.updated", trackingNumber="TRK1", status="DELIVERED"
        )
        resp = signed_client.post(
            "/shipping/webhook",
            content=body,
            headers=_signed_headers(body, secret="wrong"),
        )

        assert resp.status_code == 401
        assert resp.json()["code"] == "invalid_signature"
        signed_services.reconciler.apply_tracking_update.assert_not_awaited()
        assert tracked_shipment.tracking_status == TrackingStatus.LABEL_PURCHASED

    def test_missing_signature_returns_401(
        self, signed_client, tracked_shipment
    ) -> None:
        resp = signed_client.post(
            "/shipping/webhook",
            content=_body(type="tracking.updated", trackingNumber="TRK1"),
            headers={"content-type": "application/json"},
        )
        assert resp.status_code == 401

    def test_invalid_json_returns_400(self, signed_client) -> None:
        body = b"{not json"
        resp = signed_client.post(
            "/shipping/webhook", content=body, headers=_signed_headers(body)
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "validation_error"

    def test_unknown_event_is_acknowledged(
        self, signed_client, timeline
    ) -> None:
        body = _body(type="label.voided", trackingNumber="TRK1")
        resp = signed_client.post(
            "/shipping/webhook", content=body, headers=_signed_headers(body)
        )
        assert resp.status_code == 200
        assert resp.json() == {"received": True}
        assert timeline.events == []

    def test_unknown_tracking_number_is_acknowledged(
        self, signed_client, timeline
    ) -> None:
        body = _body(
            type="tracking.updated", trackingNumber="NOPE", status="IN_TRANSIT"
        )
        resp = signed_client.post(
            "/shipping/webhook", content=body, headers=_signed_headers(body)
        )
        assert resp.status_code == 200
        assert timeline.events == []

    def test_unsigned_webhook_accepted_without_secret(
        self, client, tracked_shipment
    ) -> None:
        resp = client.post(
            "/shipping/webhook",
            json={"mockEvent": "in_transit", "trackingNumber": "TRK1"},
        )
        assert resp.status_code == 200
        assert tracked_shipment.status == ShipmentStatus.SHIPPED
