"""Router factory and lifespan for litestar-shiptrack."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any

from litestar import Router
from litestar.di import Provide

from litestar_shiptrack.exceptions import EXCEPTION_HANDLERS
from litestar_shiptrack.routes.shipments import ShipmentController
from litestar_shiptrack.routes.shipping import ShippingController
from litestar_shiptrack.routes.webhooks import WebhookController
from litestar_shiptrack.services import ShippingServices


def create_shipping_router(*, services: ShippingServices) -> Router:
    """Create a configured Litestar router.

    Args:
        services: Service graph built with ``ShippingServices.build``.

    Returns:
        A Litestar Router with rate, label, webhook and shipment endpoints.
    """
    return Router(
        path="/",
        route_handlers=[
            ShippingController,
            WebhookController,
            ShipmentController,
        ],
        dependencies={
            "config": Provide(lambda: services.config, sync_to_thread=False),
            "carrier": Provide(lambda: services.carrier, sync_to_thread=False),
            "repository": Provide(
                lambda: services.repository, sync_to_thread=False
            ),
            "reconciler": Provide(
                lambda: services.reconciler, sync_to_thread=False
            ),
            "orchestrator": Provide(
                lambda: services.orchestrator, sync_to_thread=False
            ),
        },
        exception_handlers=EXCEPTION_HANDLERS,
    )


def polling_lifespan(
    services: ShippingServices,
) -> Callable[[Any], AbstractAsyncContextManager[None]]:
    """Lifespan hook running the polling worker alongside the app.

    The carrier adapter is closed on shutdown, after the worker stops.
    """

    @asynccontextmanager
    async def lifespan(app: Any) -> AsyncGenerator[None, None]:
        services.worker.start()
        try:
            yield
        finally:
            try:
                await services.worker.stop()
            finally:
                await services.carrier.aclose()

    return lifespan
