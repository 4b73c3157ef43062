"""Wiring of the tracking services around one carrier adapter."""

from __future__ import annotations

from dataclasses import dataclass

from litestar_shiptrack.clock import Clock, utcnow
from litestar_shiptrack.config import ShiptrackConfig
from litestar_shiptrack.orchestrator import LabelPurchaseOrchestrator
from litestar_shiptrack.poller import TrackingPoller
from litestar_shiptrack.protocols import (
    BinaryStorage,
    CarrierAdapter,
    Notifier,
    OrderDirectory,
    PayoutReleaser,
    PollJobStore,
    ShipmentRepository,
    TimelineWriter,
)
from litestar_shiptrack.reconciler import TrackingReconciler
from litestar_shiptrack.scheduler import InMemoryPollJobStore, PollingWorker


@dataclass
class ShippingServices:
    """Process-wide service graph, built once at startup."""

    config: ShiptrackConfig
    carrier: CarrierAdapter
    repository: ShipmentRepository
    job_store: PollJobStore
    reconciler: TrackingReconciler
    poller: TrackingPoller
    orchestrator: LabelPurchaseOrchestrator
    worker: PollingWorker

    @classmethod
    def build(
        cls,
        *,
        config: ShiptrackConfig,
        carrier: CarrierAdapter,
        repository: ShipmentRepository,
        orders: OrderDirectory,
        timeline: TimelineWriter,
        notifier: Notifier,
        payouts: PayoutReleaser,
        storage: BinaryStorage,
        job_store: PollJobStore | None = None,
        clock: Clock = utcnow,
    ) -> ShippingServices:
        """Construct every service with explicit collaborators.

        Without a ``job_store`` an in-memory one is used; its jobs are
        rebuilt from ``tracking_next_check_at`` when the worker starts.
        """
        job_store = job_store or InMemoryPollJobStore(
            backoff_seconds=config.poll_backoff_seconds, clock=clock
        )
        reconciler = TrackingReconciler(
            repository=repository,
            orders=orders,
            timeline=timeline,
            notifier=notifier,
            payouts=payouts,
            poll_queue=job_store,
            config=config,
            clock=clock,
        )
        poller = TrackingPoller(
            carrier=carrier,
            repository=repository,
            reconciler=reconciler,
            poll_queue=job_store,
            config=config,
            clock=clock,
        )
        orchestrator = LabelPurchaseOrchestrator(
            carrier=carrier,
            repository=repository,
            orders=orders,
            timeline=timeline,
            notifier=notifier,
            storage=storage,
            poll_queue=job_store,
            config=config,
            clock=clock,
        )
        worker = PollingWorker(
            job_store=job_store,
            poller=poller,
            repository=repository,
            config=config,
            clock=clock,
        )
        return cls(
            config=config,
            carrier=carrier,
            repository=repository,
            job_store=job_store,
            reconciler=reconciler,
            poller=poller,
            orchestrator=orchestrator,
            worker=worker,
        )
