"""Shipment tracking configuration."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ShiptrackConfig(BaseSettings):
    """Runtime config for shipment tracking.

    Reads from environment variables with SHIPTRACK_ prefix.
    """

    model_config = SettingsConfigDict(env_prefix="SHIPTRACK_")

    provider: str = "pirateship"
    carrier_api_key: str | None = None
    carrier_base_url: str = "https://api.pirateship.com"
    webhook_secret: str | None = None
    use_simulated: bool = False
    carrier_timeout_seconds: float = Field(default=10.0, gt=0)
    simulated_transition_seconds: int = Field(default=300, gt=0)

    # Polling settings
    fallback_poll_interval_seconds: int = Field(default=30 * 60, gt=0)
    poll_max_attempts: int = Field(default=3, ge=1)
    poll_backoff_seconds: int = Field(default=1, ge=0)
    poll_batch_size: int = Field(default=20, ge=1)
    poll_concurrency: int = Field(default=5, ge=1)
    poll_worker_interval_seconds: float = Field(default=5.0, gt=0)
    poll_sweep_interval_seconds: float = Field(default=300.0, gt=0)
    poll_sweep_grace_seconds: int = Field(default=60, ge=0)

    # Ordering of carrier events
    reject_out_of_order_events: bool = False

    # Webhook headers
    signature_header: str = "x-pirateship-signature"
    timestamp_header: str = "x-pirateship-timestamp"

    # Label storage
    label_storage_prefix: str = "shipping-labels"
    label_storage_dir: Path = Path("public")

    @property
    def simulated(self) -> bool:
        """Whether the carrier runs in deterministic offline mode."""
        return self.use_simulated or not self.carrier_api_key

    @property
    def fallback_poll_interval(self) -> timedelta:
        return timedelta(seconds=self.fallback_poll_interval_seconds)
