"""Litestar example app running shipment tracking on SQLite.

The carrier runs in simulated mode unless ``SHIPTRACK_CARRIER_API_KEY`` is
set, so labels can be bought and followed to delivery offline.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from litestar import Litestar
from litestar.logging.config import LoggingConfig
from litestar.static_files import create_static_files_router
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from litestar_shiptrack.config import ShiptrackConfig
from litestar_shiptrack.contrib.sqlalchemy.job_store import SQLAlchemyPollJobStore
from litestar_shiptrack.contrib.sqlalchemy.models import Base
from litestar_shiptrack.contrib.sqlalchemy.repository import (
    SQLAlchemyShipmentRepository,
)
from litestar_shiptrack.contrib.sqlalchemy.timeline import SQLAlchemyTimeline
from litestar_shiptrack.notifications import LoggingNotifier
from litestar_shiptrack.plugin import create_shipping_router, polling_lifespan
from litestar_shiptrack.registry import create_carrier_adapter
from litestar_shiptrack.services import ShippingServices
from litestar_shiptrack.storage import LocalDiskStorage
from litestar_shiptrack.types import Address, OrderInfo

DATABASE_URL = "sqlite+aiosqlite:///shiptrack_demo.db"


class DemoOrders:
    """Order directory holding a single demo order."""

    def __init__(self) -> None:
        self.orders = {
            "demo-order": OrderInfo(
                id="demo-order",
                buyer_id="demo-buyer",
                seller_id="demo-seller",
                shipping_address=Address(
                    name="Demo Buyer",
                    street1="1 Main St",
                    city="Springfield",
                    state="IL",
                    postal_code="62701",
                    country="US",
                ),
            )
        }
        self.seller_addresses = {
            "demo-seller": Address(
                name="Demo Seller",
                street1="99 Market Ave",
                city="Portland",
                state="OR",
                postal_code="97201",
                country="US",
            )
        }

    async def get_order(self, order_id: str) -> OrderInfo | None:
        return self.orders.get(order_id)

    async def get_seller_ship_from_address(
        self, seller_id: str
    ) -> Address | None:
        return self.seller_addresses.get(seller_id)


class PayoutLedger:
    """Records released payouts once per order."""

    def __init__(self) -> None:
        self.released: set[str] = set()

    async def release_payout_for_order(self, order_id: str) -> bool:
        if order_id in self.released:
            return False
        self.released.add(order_id)
        return True


def create_app(
    config: ShiptrackConfig | None = None,
    database_url: str = DATABASE_URL,
) -> Litestar:
    config = config or ShiptrackConfig()
    engine = create_async_engine(database_url)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    services = ShippingServices.build(
        config=config,
        carrier=create_carrier_adapter(config),
        repository=SQLAlchemyShipmentRepository(session_factory),
        orders=DemoOrders(),
        timeline=SQLAlchemyTimeline(session_factory),
        notifier=LoggingNotifier(),
        payouts=PayoutLedger(),
        storage=LocalDiskStorage(config.label_storage_dir, base_url="/files"),
        job_store=SQLAlchemyPollJobStore(
            session_factory, backoff_seconds=config.poll_backoff_seconds
        ),
    )

    @asynccontextmanager
    async def init_db(app: Litestar) -> AsyncGenerator[None, None]:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        try:
            yield
        finally:
            await engine.dispose()

    config.label_storage_dir.mkdir(parents=True, exist_ok=True)
    return Litestar(
        route_handlers=[
            create_shipping_router(services=services),
            create_static_files_router(
                path="/files", directories=[config.label_storage_dir]
            ),
        ],
        lifespan=[init_db, polling_lifespan(services)],
        logging_config=LoggingConfig(
            loggers={"litestar_shiptrack": {"level": "INFO"}},
        ),
    )


app = create_app()
