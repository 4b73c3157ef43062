"""Tests for tracking status normalization and mapping."""

import pytest

from litestar_shiptrack.enums import ShipmentStatus, TrackingStatus
from litestar_shiptrack.status import (
    humanize_status,
    is_terminal,
    map_tracking_to_shipment_status,
    normalize_tracking_status,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("out_for_delivery", TrackingStatus.OUT_FOR_DELIVERY),
        ("Out-For-Delivery", TrackingStatus.OUT_FOR_DELIVERY),
        ("IN_TRANSIT", TrackingStatus.IN_TRANSIT),
        ("Arrived at transit hub", TrackingStatus.IN_TRANSIT),
        ("label_created", TrackingStatus.LABEL_PURCHASED),
        ("Purchased", TrackingStatus.LABEL_PURCHASED),
        ("Delivered", TrackingStatus.DELIVERED),
        ("delivery_failed", TrackingStatus.DELIVERED),
        ("EXCEPTION", TrackingStatus.EXCEPTION),
        ("returned_to_sender", TrackingStatus.EXCEPTION),
        ("something else", TrackingStatus.UNKNOWN),
        ("", TrackingStatus.UNKNOWN),
    ],
)
def test_normalize_tracking_status(raw, expected):
    assert normalize_tracking_status(raw) == expected


def test_normalize_prefers_out_for_delivery_over_transit():
    """Earlier rules win when several substrings match."""
    assert (
        normalize_tracking_status("OUT_FOR_DELIVERY (left transit hub)")
        == TrackingStatus.OUT_FOR_DELIVERY
    )


def test_normalize_non_string_input():
    assert normalize_tracking_status(None) == TrackingStatus.UNKNOWN
    assert normalize_tracking_status(42) == TrackingStatus.UNKNOWN


@pytest.mark.parametrize(
    ("tracking", "shipment"),
    [
        (TrackingStatus.UNKNOWN, ShipmentStatus.PREPARING),
        (TrackingStatus.LABEL_PURCHASED, ShipmentStatus.PREPARING),
        (TrackingStatus.IN_TRANSIT, ShipmentStatus.SHIPPED),
        (TrackingStatus.OUT_FOR_DELIVERY, ShipmentStatus.SHIPPED),
        (TrackingStatus.DELIVERED, ShipmentStatus.DELIVERED),
        (TrackingStatus.EXCEPTION, ShipmentStatus.LOST),
    ],
)
def test_map_tracking_to_shipment_status(tracking, shipment):
    assert map_tracking_to_shipment_status(tracking) == shipment


def test_mapping_is_total():
    for status in TrackingStatus:
        assert isinstance(map_tracking_to_shipment_status(status), ShipmentStatus)


def test_terminal_statuses():
    assert is_terminal(TrackingStatus.DELIVERED)
    assert is_terminal(TrackingStatus.EXCEPTION)
    assert not is_terminal(TrackingStatus.OUT_FOR_DELIVERY)
    assert not is_terminal(TrackingStatus.UNKNOWN)


def test_humanize_status():
    assert humanize_status(TrackingStatus.OUT_FOR_DELIVERY) == "out for delivery"
