"""SQLAlchemy 2.0 async models for shipment tracking."""

import uuid
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, Numeric, String, Text
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _uuid() -> str:
    return str(uuid.uuid4())


class UTCDateTime(TypeDecorator[datetime]):
    """Timezone-aware UTC datetimes, also on backends that drop tzinfo."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: datetime | None, dialect: Dialect
    ) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(
        self, value: datetime | None, dialect: Dialect
    ) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class Base(DeclarativeBase):
    """Base class for all shiptrack models."""


class ShipmentModel(Base):
    """Shipment record implementing the ShipmentRepository protocol."""

    __tablename__ = "shiptrack_shipments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    order_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    tracking_number: Mapped[str | None] = mapped_column(
        String(128), index=True, default=None
    )
    carrier: Mapped[str | None] = mapped_column(String(64), default=None)
    service_level: Mapped[str | None] = mapped_column(String(128), default=None)
    provider: Mapped[str | None] = mapped_column(String(64), default=None)

    status: Mapped[str] = mapped_column(String(32), default="PREPARING")
    tracking_status: Mapped[str] = mapped_column(String(32), default="UNKNOWN")
    tracking_status_detail: Mapped[str | None] = mapped_column(
        Text, default=None
    )
    tracking_last_event_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime, default=None
    )
    tracking_last_checked_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime, default=None
    )
    tracking_next_check_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime, index=True, default=None
    )
    tracking_url: Mapped[str | None] = mapped_column(String(512), default=None)
    tracking_subscription_id: Mapped[str | None] = mapped_column(
        String(128), default=None
    )

    label_url: Mapped[str | None] = mapped_column(String(512), default=None)
    label_key: Mapped[str | None] = mapped_column(String(255), default=None)
    label_cost: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 2), default=None
    )
    label_currency: Mapped[str | None] = mapped_column(String(3), default=None)
    label_purchased_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime, default=None
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_now)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=_now, onupdate=_now
    )


class TimelineEventModel(Base):
    """Append-only order timeline entry."""

    __tablename__ = "shiptrack_timeline_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    order_id: Mapped[str] = mapped_column(String(64), index=True)
    event_type: Mapped[str] = mapped_column(String(32), default="NOTE")
    message: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_now)


class PollJobModel(Base):
    """Delayed tracking poll job."""

    __tablename__ = "shiptrack_poll_jobs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    shipment_id: Mapped[str] = mapped_column(String(36), index=True)
    not_before: Mapped[datetime] = mapped_column(UTCDateTime, index=True)
    attempts: Mapped[int] = mapped_column(default=0)
    last_error: Mapped[str | None] = mapped_column(
        Text, nullable=True, default=None
    )
    status: Mapped[str] = mapped_column(String(20), default="pending")
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=_now)
