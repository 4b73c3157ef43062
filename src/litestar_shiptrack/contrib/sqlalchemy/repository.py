"""SQLAlchemy 2.0 async ShipmentRepository implementation."""

from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from litestar_shiptrack.contrib.sqlalchemy.models import ShipmentModel
from litestar_shiptrack.status import TERMINAL_TRACKING_STATUSES

_COLUMNS = frozenset(ShipmentModel.__table__.columns.keys())


def _coerce(fields: dict[str, Any]) -> dict[str, Any]:
    # Store enum members as their plain string values
    return {
        key: str(value) if isinstance(value, StrEnum) else value
        for key, value in fields.items()
    }


class SQLAlchemyShipmentRepository:
    """Shipment repository backed by SQLAlchemy async sessions.

    Implements the ShipmentRepository protocol.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        self._session_factory = session_factory

    async def get_by_id(self, shipment_id: str) -> ShipmentModel:
        """Get a shipment by ID. Raises KeyError if not found."""
        async with self._session_factory() as session:
            result = await session.get(ShipmentModel, shipment_id)
            if result is None:
                raise KeyError(shipment_id)
            session.expunge(result)
            return result

    async def _find_one(self, *criteria: Any) -> ShipmentModel | None:
        async with self._session_factory() as session:
            stmt = select(ShipmentModel).where(*criteria).limit(1)
            result = await session.execute(stmt)
            shipment = result.scalars().first()
            if shipment is not None:
                session.expunge(shipment)
            return shipment

    async def find_by_tracking_number(
        self, tracking_number: str
    ) -> ShipmentModel | None:
        return await self._find_one(
            ShipmentModel.tracking_number == tracking_number
        )

    async def find_by_order_id(self, order_id: str) -> ShipmentModel | None:
        return await self._find_one(ShipmentModel.order_id == order_id)

    async def upsert_for_order(self, order_id: str, **fields: Any) -> ShipmentModel:
        """Create the order's shipment or overwrite the given fields."""
        fields = _coerce(fields)
        try:
            return await self._upsert(order_id, fields)
        except IntegrityError:
            # A concurrent request created the row first; update it instead.
            return await self._upsert(order_id, fields)

    async def _upsert(
        self, order_id: str, fields: dict[str, Any]
    ) -> ShipmentModel:
        async with self._session_factory() as session:
            stmt = select(ShipmentModel).where(ShipmentModel.order_id == order_id)
            shipment = (await session.execute(stmt)).scalars().first()
            if shipment is None:
                shipment = ShipmentModel(order_id=order_id, **fields)
                session.add(shipment)
            else:
                for key, value in fields.items():
                    setattr(shipment, key, value)
            await session.commit()
            await session.refresh(shipment)
            session.expunge(shipment)
            return shipment

    async def update_tracking(self, shipment_id: str, **fields: Any) -> ShipmentModel:
        """Update tracking fields in one transaction.

        Raises ValueError for names that are not shipment columns.
        """
        unknown = set(fields) - _COLUMNS
        if unknown:
            raise ValueError(f"Unknown shipment fields: {sorted(unknown)}")
        async with self._session_factory() as session:
            shipment = await session.get(ShipmentModel, shipment_id)
            if shipment is None:
                raise KeyError(shipment_id)
            for key, value in _coerce(fields).items():
                setattr(shipment, key, value)
            await session.commit()
            await session.refresh(shipment)
            session.expunge(shipment)
            return shipment

    async def record_poll_checkpoint(
        self,
        shipment_id: str,
        checked_at: datetime,
        next_check_at: datetime | None,
    ) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                update(ShipmentModel)
                .where(ShipmentModel.id == shipment_id)
                .where(
                    ShipmentModel.tracking_status.not_in(
                        [str(s) for s in TERMINAL_TRACKING_STATUSES]
                    )
                )
                .values(
                    tracking_last_checked_at=checked_at,
                    tracking_next_check_at=next_check_at,
                )
            )
            await session.commit()
            return result.rowcount > 0

    async def list_due_for_poll(
        self, now: datetime, limit: int = 100
    ) -> list[ShipmentModel]:
        """Non-terminal shipments whose next check is at or before ``now``."""
        async with self._session_factory() as session:
            stmt = (
                select(ShipmentModel)
                .where(ShipmentModel.tracking_number.is_not(None))
                .where(ShipmentModel.tracking_next_check_at.is_not(None))
                .where(ShipmentModel.tracking_next_check_at <= now)
                .where(
                    ShipmentModel.tracking_status.not_in(
                        [str(s) for s in TERMINAL_TRACKING_STATUSES]
                    )
                )
                .order_by(ShipmentModel.tracking_next_check_at.asc())
                .limit(limit)
            )
            result = await session.execute(stmt)
            shipments = list(result.scalars().all())
            for s in shipments:
                session.expunge(s)
            return shipments
