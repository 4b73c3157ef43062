"""Delayed tracking-poll jobs with exponential backoff."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import uuid4

from litestar_shiptrack.clock import Clock, utcnow
from litestar_shiptrack.config import ShiptrackConfig
from litestar_shiptrack.enums import PollJobStatus
from litestar_shiptrack.poller import TrackingPoller
from litestar_shiptrack.protocols import PollJobStore, PollQueue, ShipmentRepository

logger = logging.getLogger(__name__)


def compute_next_attempt_at(
    attempt: int,
    backoff_seconds: int,
    now: datetime | None = None,
) -> datetime:
    """Compute the next attempt time with exponential backoff.

    delay = backoff_seconds * 2^(attempt - 1)
    """
    delay = backoff_seconds * (2 ** (attempt - 1))
    return (now or utcnow()) + timedelta(seconds=delay)


@dataclass
class _InMemoryJob:
    id: str
    shipment_id: str
    not_before: datetime
    attempts: int = 0
    status: PollJobStatus = PollJobStatus.PENDING
    last_error: str | None = None


class InMemoryPollJobStore:
    """Process-local poll job store for offline and single-node use.

    Implements the PollJobStore protocol. Finished jobs are dropped rather
    than kept, and pending jobs are lost on restart; the schedule is rebuilt
    from shipments with ``reschedule_due_shipments``.
    """

    def __init__(self, backoff_seconds: int = 1, clock: Clock = utcnow) -> None:
        self._backoff_seconds = backoff_seconds
        self._clock = clock
        self.jobs: dict[str, _InMemoryJob] = {}

    async def enqueue_poll(self, shipment_id: str, not_before: datetime) -> None:
        """Schedule a poll, moving the shipment's pending job if it has one."""
        for job in self.jobs.values():
            if (
                job.shipment_id == shipment_id
                and job.status == PollJobStatus.PENDING
            ):
                job.not_before = not_before
                return
        job_id = str(uuid4())
        self.jobs[job_id] = _InMemoryJob(
            id=job_id, shipment_id=shipment_id, not_before=not_before
        )

    async def get_due_jobs(self, limit: int = 10) -> list[dict]:
        now = self._clock()
        due = sorted(
            (
                job
                for job in self.jobs.values()
                if job.status == PollJobStatus.PENDING and job.not_before <= now
            ),
            key=lambda job: job.not_before,
        )[:limit]
        for job in due:
            job.status = PollJobStatus.RUNNING
        return [
            {
                "id": job.id,
                "shipment_id": job.shipment_id,
                "attempts": job.attempts,
            }
            for job in due
        ]

    async def mark_succeeded(self, job_id: str) -> None:
        self.jobs.pop(job_id, None)

    async def mark_failed(self, job_id: str, error: str) -> None:
        job = self.jobs.get(job_id)
        if job is not None:
            job.attempts += 1
            job.last_error = error
            job.not_before = compute_next_attempt_at(
                attempt=job.attempts,
                backoff_seconds=self._backoff_seconds,
                now=self._clock(),
            )
            job.status = PollJobStatus.PENDING

    async def mark_exhausted(self, job_id: str) -> None:
        job = self.jobs.pop(job_id, None)
        if job is not None:
            logger.debug(
                "Dropped exhausted poll job %s (last error: %s)",
                job_id,
                job.last_error,
            )

    def pending_for(self, shipment_id: str) -> list[_InMemoryJob]:
        return [
            job
            for job in self.jobs.values()
            if job.shipment_id == shipment_id
            and job.status == PollJobStatus.PENDING
        ]


async def _run_job(
    job: dict,
    *,
    job_store: PollJobStore,
    poller: TrackingPoller,
    max_attempts: int,
    semaphore: asyncio.Semaphore,
) -> None:
    job_id = job["id"]
    shipment_id = job["shipment_id"]
    attempt = job["attempts"] + 1

    async with semaphore:
        try:
            await poller.poll_shipment(shipment_id)
        except Exception as exc:
            if attempt >= max_attempts:
                await job_store.mark_exhausted(job_id)
                logger.warning(
                    "Poll job %s for shipment %s exhausted after %d attempts: %s",
                    job_id,
                    shipment_id,
                    attempt,
                    exc,
                )
            else:
                await job_store.mark_failed(job_id, error=str(exc))
                logger.info(
                    "Poll job %s for shipment %s: attempt %d failed: %s",
                    job_id,
                    shipment_id,
                    attempt,
                    exc,
                )
            return

    await job_store.mark_succeeded(job_id)
    logger.debug("Poll job %s for shipment %s succeeded", job_id, shipment_id)


async def process_due_polls(
    *,
    job_store: PollJobStore,
    poller: TrackingPoller,
    max_attempts: int = 3,
    limit: int = 20,
    concurrency: int = 5,
) -> int:
    """Run all due poll jobs, at most ``concurrency`` at a time.

    Returns the number of jobs processed.
    """
    jobs = await job_store.get_due_jobs(limit=limit)
    if not jobs:
        return 0

    semaphore = asyncio.Semaphore(concurrency)
    await asyncio.gather(
        *(
            _run_job(
                job,
                job_store=job_store,
                poller=poller,
                max_attempts=max_attempts,
                semaphore=semaphore,
            )
            for job in jobs
        )
    )
    return len(jobs)


async def reschedule_due_shipments(
    *,
    repository: ShipmentRepository,
    queue: PollQueue,
    now: datetime | None = None,
    grace: timedelta = timedelta(0),
    limit: int = 100,
) -> int:
    """Re-enqueue polls for shipments whose next check is overdue.

    ``tracking_next_check_at`` is the source of truth for the polling
    cadence, so this rebuilds lost or exhausted jobs from storage alone.
    """
    now = now or utcnow()
    shipments = await repository.list_due_for_poll(now - grace, limit=limit)
    for shipment in shipments:
        await queue.enqueue_poll(shipment.id, now)
    if shipments:
        logger.info("Rescheduled %d overdue shipment polls", len(shipments))
    return len(shipments)


class PollingWorker:
    """Background loop that drains the poll job store.

    Started and stopped by the application lifespan.
    """

    def __init__(
        self,
        *,
        job_store: PollJobStore,
        poller: TrackingPoller,
        repository: ShipmentRepository,
        config: ShiptrackConfig,
        clock: Clock = utcnow,
    ) -> None:
        self._job_store = job_store
        self._poller = poller
        self._repository = repository
        self._config = config
        self._clock = clock
        self._task: asyncio.Task[None] | None = None
        self._last_sweep_at: datetime | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> int:
        await self._sweep_if_due()
        return await process_due_polls(
            job_store=self._job_store,
            poller=self._poller,
            max_attempts=self._config.poll_max_attempts,
            limit=self._config.poll_batch_size,
            concurrency=self._config.poll_concurrency,
        )

    async def _sweep_if_due(self) -> None:
        now = self._clock()
        if self._last_sweep_at is None:
            grace = timedelta(0)
        elif now - self._last_sweep_at >= timedelta(
            seconds=self._config.poll_sweep_interval_seconds
        ):
            grace = timedelta(seconds=self._config.poll_sweep_grace_seconds)
        else:
            return
        self._last_sweep_at = now
        await reschedule_due_shipments(
            repository=self._repository,
            queue=self._job_store,
            now=now,
            grace=grace,
            limit=self._config.poll_batch_size,
        )

    async def _run_forever(self) -> None:
        while True:
            try:
                await self.run_once()
            except Exception:
                logger.exception("Polling worker iteration failed")
            await asyncio.sleep(self._config.poll_worker_interval_seconds)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(
            self._run_forever(), name="shiptrack-polling-worker"
        )
        logger.info("Polling worker started")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Polling worker stopped")
