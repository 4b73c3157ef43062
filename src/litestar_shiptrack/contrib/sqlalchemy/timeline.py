"""SQLAlchemy-backed order timeline."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from litestar_shiptrack.contrib.sqlalchemy.models import TimelineEventModel


class SQLAlchemyTimeline:
    """Append-only timeline store.

    Implements the TimelineWriter protocol.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        self._session_factory = session_factory

    async def add_timeline_event(self, order_id: str, message: str) -> None:
        async with self._session_factory() as session:
            session.add(TimelineEventModel(order_id=order_id, message=message))
            await session.commit()

    async def list_for_order(self, order_id: str) -> list[TimelineEventModel]:
        async with self._session_factory() as session:
            stmt = (
                select(TimelineEventModel)
                .where(TimelineEventModel.order_id == order_id)
                .order_by(TimelineEventModel.created_at.asc())
            )
            result = await session.execute(stmt)
            events = list(result.scalars().all())
            for event in events:
                session.expunge(event)
            return events
