"""Tests for collaborator protocol conformance."""

from litestar_shiptrack.carriers.simulated import SimulatedCarrierAdapter
from litestar_shiptrack.notifications import LoggingNotifier
from litestar_shiptrack.protocols import (
    BinaryStorage,
    CarrierAdapter,
    Notifier,
    OrderDirectory,
    PollJobStore,
    PollQueue,
    ShipmentRepository,
    TimelineWriter,
)
from litestar_shiptrack.scheduler import InMemoryPollJobStore
from litestar_shiptrack.storage import LocalDiskStorage


def test_test_doubles_satisfy_protocols(
    repository, orders, timeline, notifier, storage
):
    assert isinstance(repository, ShipmentRepository)
    assert isinstance(orders, OrderDirectory)
    assert isinstance(timeline, TimelineWriter)
    assert isinstance(notifier, Notifier)
    assert isinstance(storage, BinaryStorage)


def test_builtin_implementations_satisfy_protocols(tmp_path):
    assert isinstance(SimulatedCarrierAdapter(), CarrierAdapter)
    assert isinstance(LoggingNotifier(), Notifier)
    assert isinstance(LocalDiskStorage(tmp_path), BinaryStorage)
    store = InMemoryPollJobStore()
    assert isinstance(store, PollJobStore)
    assert isinstance(store, PollQueue)


def test_incomplete_repository_is_rejected():
    class ReadOnlyRepo:
        async def get_by_id(self, shipment_id):
            raise KeyError(shipment_id)

    assert not isinstance(ReadOnlyRepo(), ShipmentRepository)
