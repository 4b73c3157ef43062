"""SQLAlchemy-backed delayed poll job store."""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from litestar_shiptrack.clock import Clock, utcnow
from litestar_shiptrack.contrib.sqlalchemy.models import PollJobModel
from litestar_shiptrack.enums import PollJobStatus
from litestar_shiptrack.scheduler import compute_next_attempt_at


class SQLAlchemyPollJobStore:
    """Poll job store backed by SQLAlchemy.

    Implements the PollJobStore protocol. A shipment has at most one
    pending job; enqueueing again moves that job instead of adding one.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        backoff_seconds: int = 1,
        clock: Clock = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._backoff_seconds = backoff_seconds
        self._clock = clock

    async def enqueue_poll(self, shipment_id: str, not_before: datetime) -> None:
        """Schedule a poll for ``shipment_id`` at ``not_before``."""
        async with self._session_factory() as session:
            stmt = (
                select(PollJobModel)
                .where(PollJobModel.shipment_id == shipment_id)
                .where(PollJobModel.status == PollJobStatus.PENDING.value)
                .limit(1)
            )
            job = (await session.execute(stmt)).scalars().first()
            if job is None:
                session.add(
                    PollJobModel(
                        shipment_id=shipment_id,
                        not_before=not_before,
                        attempts=0,
                        status=PollJobStatus.PENDING.value,
                    )
                )
            else:
                job.not_before = not_before
            await session.commit()

    async def get_due_jobs(self, limit: int = 10) -> list[dict]:
        """Claim jobs that are due and mark them running."""
        now = self._clock()
        async with self._session_factory() as session:
            stmt = (
                select(PollJobModel)
                .where(PollJobModel.status == PollJobStatus.PENDING.value)
                .where(PollJobModel.not_before <= now)
                .order_by(PollJobModel.not_before.asc())
                .limit(limit)
                .with_for_update(skip_locked=True)
            )
            result = await session.execute(stmt)
            jobs = result.scalars().all()
            claimed = [
                {
                    "id": job.id,
                    "shipment_id": job.shipment_id,
                    "attempts": job.attempts,
                }
                for job in jobs
            ]
            for job in jobs:
                job.status = PollJobStatus.RUNNING.value
            await session.commit()
            return claimed

    async def mark_succeeded(self, job_id: str) -> None:
        """Mark a job as successfully processed."""
        async with self._session_factory() as session:
            job = await session.get(PollJobModel, job_id)
            if job is not None:
                job.status = PollJobStatus.SUCCEEDED.value
                await session.commit()

    async def mark_failed(self, job_id: str, error: str) -> None:
        """Mark a job as failed and schedule the next attempt."""
        async with self._session_factory() as session:
            job = await session.get(PollJobModel, job_id)
            if job is not None:
                job.attempts += 1
                job.last_error = error
                job.not_before = compute_next_attempt_at(
                    attempt=job.attempts,
                    backoff_seconds=self._backoff_seconds,
                    now=self._clock(),
                )
                job.status = PollJobStatus.PENDING.value
                await session.commit()

    async def mark_exhausted(self, job_id: str) -> None:
        """Mark a job as exhausted (dead letter)."""
        async with self._session_factory() as session:
            job = await session.get(PollJobModel, job_id)
            if job is not None:
                job.status = PollJobStatus.EXHAUSTED.value
                await session.commit()

    async def list_for_shipment(self, shipment_id: str) -> list[PollJobModel]:
        async with self._session_factory() as session:
            stmt = (
                select(PollJobModel)
                .where(PollJobModel.shipment_id == shipment_id)
                .order_by(PollJobModel.created_at.asc())
            )
            result = await session.execute(stmt)
            jobs = list(result.scalars().all())
            for job in jobs:
                session.expunge(job)
            return jobs
