"""Tests for the logging notifier."""

from litestar_shiptrack.enums import NotificationType
from litestar_shiptrack.notifications import LoggingNotifier


async def test_logs_notification(caplog):
    with caplog.at_level("INFO", logger="litestar_shiptrack.notifications"):
        await LoggingNotifier().send_notification(
            "buyer-1", NotificationType.ORDER_UPDATED, {"orderId": "order-1"}
        )
    assert "buyer-1" in caplog.text
    assert "order-1" in caplog.text
