"""Litestar example app tests."""

from __future__ import annotations

import importlib.util
import sys
from pathlib import Path

from litestar.testing import TestClient

from litestar_shiptrack.config import ShiptrackConfig


def _load_example_module():
    path = Path(__file__).resolve().parents[1] / "examples" / "app.py"
    spec = importlib.util.spec_from_file_location(
        "litestar_shiptrack_example",
        path,
    )
    if spec is None or spec.loader is None:
        raise RuntimeError("Cannot load Litestar example app module")
    module = importlib.util.module_from_spec(spec)
    sys.modules[spec.name] = module
    spec.loader.exec_module(module)
    return module


def test_example_app_buys_and_serves_label(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SHIPTRACK_CARRIER_API_KEY", raising=False)
    module = _load_example_module()
    app = module.create_app(
        config=ShiptrackConfig(
            use_simulated=True, label_storage_dir=tmp_path / "labels"
        ),
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'demo.db'}",
    )

    with TestClient(app=app) as client:
        purchase = client.post(
            "/shipping/labels",
            json={
                "orderId": "demo-order",
                "sellerId": "demo-seller",
                "rateId": "mock-usps-priority",
                "parcel": {
                    "lengthInches": 10,
                    "widthInches": 8,
                    "heightInches": 4,
                    "weightOz": 16,
                },
            },
        )
        assert purchase.status_code == 200, purchase.text
        body = purchase.json()

        shipment = client.get("/shipments/demo-order")
        assert shipment.status_code == 200
        assert shipment.json()["trackingNumber"] == body["trackingNumber"]
        assert shipment.json()["trackingStatus"] == "LABEL_PURCHASED"

        label = client.get(body["labelUrl"])
        assert label.status_code == 200
        assert label.content.startswith(b"%PDF")


async def test_payout_ledger_is_idempotent(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    module = _load_example_module()
    ledger = module.PayoutLedger()
    assert await ledger.release_payout_for_order("demo-order") is True
    assert await ledger.release_payout_for_order("demo-order") is False
