"""Shared fixtures for litestar-shiptrack tests."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from dataclasses import fields as dataclass_fields
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock

import pytest
from litestar import Litestar
from litestar.testing import TestClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from litestar_shiptrack.carriers.simulated import SimulatedCarrierAdapter
from litestar_shiptrack.config import ShiptrackConfig
from litestar_shiptrack.contrib.sqlalchemy.models import Base
from litestar_shiptrack.enums import NotificationType, TrackingStatus
from litestar_shiptrack.plugin import create_shipping_router
from litestar_shiptrack.scheduler import InMemoryPollJobStore
from litestar_shiptrack.services import ShippingServices
from litestar_shiptrack.status import TERMINAL_TRACKING_STATUSES
from litestar_shiptrack.types import Address, OrderInfo, StoredObject

START = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@dataclass
class DemoShipment:
    id: str
    order_id: str
    tracking_number: str | None = None
    carrier: str | None = None
    service_level: str | None = None
    provider: str | None = None
    status: str = "PREPARING"
    tracking_status: str = "UNKNOWN"
    tracking_status_detail: str | None = None
    tracking_last_event_at: datetime | None = None
    tracking_last_checked_at: datetime | None = None
    tracking_next_check_at: datetime | None = None
    tracking_url: str | None = None
    tracking_subscription_id: str | None = None
    label_url: str | None = None
    label_key: str | None = None
    label_cost: Decimal | None = None
    label_currency: str | None = None
    label_purchased_at: datetime | None = None


class InMemoryRepo:
    def __init__(self) -> None:
        self.items: dict[str, DemoShipment] = {}
        self.checkpoints: list[tuple[str, datetime, datetime | None]] = []
        self._counter = 0

    def add(self, order_id: str, **fields: Any) -> DemoShipment:
        self._counter += 1
        shipment = DemoShipment(
            id=f"s-{self._counter}", order_id=order_id, **fields
        )
        self.items[shipment.id] = shipment
        return shipment

    async def get_by_id(self, shipment_id: str) -> DemoShipment:
        return self.items[shipment_id]

    async def find_by_tracking_number(
        self, tracking_number: str
    ) -> DemoShipment | None:
        for shipment in self.items.values():
            if shipment.tracking_number == tracking_number:
                return shipment
        return None

    async def find_by_order_id(self, order_id: str) -> DemoShipment | None:
        for shipment in self.items.values():
            if shipment.order_id == order_id:
                return shipment
        return None

    async def upsert_for_order(self, order_id: str, **fields: Any) -> DemoShipment:
        shipment = await self.find_by_order_id(order_id)
        if shipment is None:
            return self.add(order_id, **fields)
        for key, value in fields.items():
            setattr(shipment, key, value)
        return shipment

    async def update_tracking(self, shipment_id: str, **fields: Any) -> DemoShipment:
        unknown = set(fields) - {f.name for f in dataclass_fields(DemoShipment)}
        if unknown:
            raise ValueError(f"Unknown shipment fields: {sorted(unknown)}")
        shipment = self.items[shipment_id]
        for key, value in fields.items():
            setattr(shipment, key, value)
        return shipment

    async def record_poll_checkpoint(
        self,
        shipment_id: str,
        checked_at: datetime,
        next_check_at: datetime | None,
    ) -> bool:
        shipment = self.items.get(shipment_id)
        if (
            shipment is None
            or shipment.tracking_status in TERMINAL_TRACKING_STATUSES
        ):
            return False
        self.checkpoints.append((shipment_id, checked_at, next_check_at))
        shipment.tracking_last_checked_at = checked_at
        shipment.tracking_next_check_at = next_check_at
        return True

    async def list_due_for_poll(
        self, now: datetime, limit: int = 100
    ) -> list[DemoShipment]:
        due = [
            s
            for s in self.items.values()
            if s.tracking_number
            and s.tracking_next_check_at is not None
            and s.tracking_next_check_at <= now
            and s.tracking_status not in TERMINAL_TRACKING_STATUSES
        ]
        due.sort(key=lambda s: s.tracking_next_check_at)
        return due[:limit]


SHIP_TO = Address(
    name="Bea Buyer",
    street1="1 Main St",
    city="Springfield",
    state="IL",
    postal_code="62701",
    country="US",
)
SHIP_FROM = Address(
    name="Sam Seller",
    street1="99 Market Ave",
    city="Portland",
    state="OR",
    postal_code="97201",
    country="US",
)


class OrderBook:
    def __init__(self) -> None:
        self.orders: dict[str, OrderInfo] = {
            "order-1": OrderInfo(
                id="order-1",
                buyer_id="buyer-1",
                seller_id="seller-1",
                shipping_address=SHIP_TO,
            )
        }
        self.seller_addresses: dict[str, Address] = {"seller-1": SHIP_FROM}

    async def get_order(self, order_id: str) -> OrderInfo | None:
        return self.orders.get(order_id)

    async def get_seller_ship_from_address(
        self, seller_id: str
    ) -> Address | None:
        return self.seller_addresses.get(seller_id)


class RecordingTimeline:
    def __init__(self) -> None:
        self.events: list[tuple[str, str]] = []

    async def add_timeline_event(self, order_id: str, message: str) -> None:
        self.events.append((order_id, message))


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[str, NotificationType, dict]] = []

    async def send_notification(
        self, user_id: str, type: NotificationType, payload: dict
    ) -> None:
        self.sent.append((user_id, type, payload))


@dataclass
class MemoryStorage:
    uploads: list[tuple[str, bytes, str]] = field(default_factory=list)

    async def upload_binary(
        self, prefix: str, data: bytes, content_type: str
    ) -> StoredObject:
        self.uploads.append((prefix, data, content_type))
        key = f"{prefix}/label-{len(self.uploads)}.pdf"
        return StoredObject(key=key, url=f"https://files.test/{key}")


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def config() -> ShiptrackConfig:
    return ShiptrackConfig(use_simulated=True)


@pytest.fixture()
def repository() -> InMemoryRepo:
    return InMemoryRepo()


@pytest.fixture()
def orders() -> OrderBook:
    return OrderBook()


@pytest.fixture()
def timeline() -> RecordingTimeline:
    return RecordingTimeline()


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def payouts() -> AsyncMock:
    return AsyncMock()


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def carrier(clock: FixedClock) -> SimulatedCarrierAdapter:
    return SimulatedCarrierAdapter(clock=clock)


@pytest.fixture()
def job_store(clock: FixedClock) -> InMemoryPollJobStore:
    return InMemoryPollJobStore(clock=clock)


@pytest.fixture()
def services(
    config: ShiptrackConfig,
    carrier: SimulatedCarrierAdapter,
    repository: InMemoryRepo,
    orders: OrderBook,
    timeline: RecordingTimeline,
    notifier: RecordingNotifier,
    payouts: AsyncMock,
    storage: MemoryStorage,
    job_store: InMemoryPollJobStore,
    clock: FixedClock,
) -> ShippingServices:
    return ShippingServices.build(
        config=config,
        carrier=carrier,
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
def tracked_shipment(repository: InMemoryRepo) -> DemoShipment:
    """A shipment with a purchased label awaiting its first scan."""
    return repository.add(
        "order-1",
        tracking_number="TRK1",
        carrier="USPS",
        provider="pirateship",
        status="PREPARING",
        tracking_status=TrackingStatus.LABEL_PURCHASED,
        tracking_next_check_at=START + timedelta(minutes=30),
    )


@pytest.fixture()
def test_app(services: ShippingServices) -> Litestar:
    return Litestar(route_handlers=[create_shipping_router(services=services)])


@pytest.fixture()
def client(test_app: Litestar) -> Iterator[TestClient]:
    with TestClient(app=test_app) as tc:
        yield tc


# ---------------------------------------------------------------------------
# SQLAlchemy fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
async def async_engine():
    engine = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def async_session_factory(async_engine):
    return async_sessionmaker(
        async_engine, class_=AsyncSession, expire_on_commit=False
    )
