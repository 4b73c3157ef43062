"""Carrier adapter registry."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import timedelta

from litestar_shiptrack.carriers.pirateship import PirateShipAdapter
from litestar_shiptrack.carriers.simulated import SimulatedCarrierAdapter
from litestar_shiptrack.config import ShiptrackConfig
from litestar_shiptrack.exceptions import ConfigurationError
from litestar_shiptrack.protocols import CarrierAdapter

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[ShiptrackConfig], CarrierAdapter]


def _simulated_factory(config: ShiptrackConfig) -> CarrierAdapter:
    return SimulatedCarrierAdapter(
        transition_interval=timedelta(seconds=config.simulated_transition_seconds),
        webhook_secret=config.webhook_secret,
    )


def _pirateship_factory(config: ShiptrackConfig) -> CarrierAdapter:
    if config.simulated:
        return _simulated_factory(config)
    if not config.carrier_api_key:
        raise ConfigurationError(
            "Pirate Ship requires SHIPTRACK_CARRIER_API_KEY outside simulated mode"
        )
    return PirateShipAdapter(
        api_key=config.carrier_api_key,
        base_url=config.carrier_base_url,
        webhook_secret=config.webhook_secret,
        timeout=config.carrier_timeout_seconds,
    )


class CarrierRegistry:
    """Maps provider slugs to adapter factories."""

    def __init__(self) -> None:
        self._factories: dict[str, AdapterFactory] = {}

    def register(self, slug: str, factory: AdapterFactory) -> None:
        self._factories[slug] = factory

    def get_choices(self) -> list[str]:
        return sorted(self._factories)

    def create(self, config: ShiptrackConfig) -> CarrierAdapter:
        """Build the adapter selected by ``config.provider``.

        Call once at process start and hand the instance to every consumer.
        """
        factory = self._factories.get(config.provider)
        if factory is None:
            raise ConfigurationError(
                f"Unknown carrier provider {config.provider!r}; "
                f"expected one of {self.get_choices()}"
            )
        adapter = factory(config)
        logger.info(
            "Using carrier adapter %s for provider %r",
            type(adapter).__name__,
            config.provider,
        )
        return adapter


def default_registry() -> CarrierRegistry:
    registry = CarrierRegistry()
    registry.register("pirateship", _pirateship_factory)
    registry.register("simulated", _simulated_factory)
    return registry


def create_carrier_adapter(config: ShiptrackConfig) -> CarrierAdapter:
    return default_registry().create(config)
