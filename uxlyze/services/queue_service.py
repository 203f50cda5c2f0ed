# uxlyze/services/queue_service.py
"""
Rate-limited job queue.

Submissions are buffered in a bounded queue and drained by a single consumer
task that admits at most RATE_LIMIT_MAX_JOBS jobs per RATE_LIMIT_WINDOW.
A full queue rejects new submissions immediately with QueueFullError.

The rate limiter is only touched by the consumer task, so it needs no lock.
Running more than one consumer would require guarding it.
"""
import asyncio
import contextlib
import logging
import threading
import time
from typing import Awaitable, Callable, Optional
from urllib.parse import urlparse

from uxlyze.core.config import settings
from uxlyze.core.exceptions import (
    AdmissionError,
    InvalidURLError,
    JobNotFoundError,
    JobNotPendingError,
    QueueFullError,
    StoreError,
)
from uxlyze.models import AnalysisRequest, JobRecord, JobStatus, QueuedJob, Report, ReportConfig
from uxlyze.services.report_service import generate_report
from uxlyze.services.store_service import JobStore

logger = logging.getLogger(__name__)

ReportRunner = Callable[[str, ReportConfig], Awaitable[Report]]


def is_valid_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc) and " " not in url


class JobCounter:
    """Hands out unique, strictly increasing job identifiers."""

    def __init__(self, start: int = 1):
        self._next = start
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            value = self._next
            self._next += 1
            return value


class RateLimiter:
    """
    Fixed-size admission window. Once `now` passes the window's expiry the
    count drops to zero and the next window starts at `now`, not at the old
    expiry.
    """

    def __init__(
        self,
        max_jobs: int,
        window: float,
        clock: Callable[[], float] = time.monotonic,
        poll_interval: float = 1.0,
    ):
        if max_jobs < 1:
            raise ValueError("max_jobs must be at least 1")
        self.max_jobs = max_jobs
        self.window = window
        self.poll_interval = poll_interval
        self._clock = clock
        self.count = 0
        self.reset_at = clock() + window

    def try_acquire(self) -> bool:
        now = self._clock()
        if now > self.reset_at:
            self.count = 0
            self.reset_at = now + self.window
        if self.count < self.max_jobs:
            self.count += 1
            return True
        return False

    async def acquire(self) -> None:
        """Waits, polling every `poll_interval` seconds, until a job may be admitted."""
        if self.try_acquire():
            return
        logger.info("Rate limit of %d jobs per %ss reached, waiting", self.max_jobs, self.window)
        while not self.try_acquire():
            await asyncio.sleep(self.poll_interval)


class JobQueue:
    def __init__(
        self,
        store: JobStore,
        *,
        runner: ReportRunner = generate_report,
        limiter: Optional[RateLimiter] = None,
        maxsize: Optional[int] = None,
        counter: Optional[JobCounter] = None,
    ):
        self.store = store
        self.runner = runner
        self.limiter = limiter or RateLimiter(
            settings.RATE_LIMIT_MAX_JOBS,
            settings.RATE_LIMIT_WINDOW,
            poll_interval=settings.RATE_LIMIT_POLL_INTERVAL,
        )
        self.counter = counter or JobCounter()
        self._queue: "asyncio.Queue[QueuedJob]" = asyncio.Queue(
            settings.QUEUE_MAX_SIZE if maxsize is None else maxsize
        )
        self._worker: Optional[asyncio.Task] = None

    @property
    def size(self) -> int:
        return self._queue.qsize()

    async def submit(self, request: AnalysisRequest, project_id: Optional[str] = None) -> QueuedJob:
        """
        Records a pending job and enqueues it without blocking.

        Raises:
            InvalidURLError: If the URL is not an absolute http(s) URL.
            QueueFullError: If the queue is at capacity.
        """
        if not is_valid_url(request.url):
            raise InvalidURLError(f"Invalid URL: {request.url!r}")
        if self._queue.full():
            raise QueueFullError(f"Job queue is full ({self._queue.maxsize} jobs)")

        record = await self.store.create_job(request.url, request.config, project_id)
        job = QueuedJob(job_id=self.counter.next(), report_id=record.id, request=request)
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            # Filled up while the job was being recorded
            await self.store.update_status(record.id, JobStatus.FAILED, "job queue full")
            raise QueueFullError(f"Job queue is full ({self._queue.maxsize} jobs)") from None
        logger.info("Queued job %d for report %s (%s)", job.job_id, job.report_id, request.url)
        return job

    async def _admit(self, job: QueuedJob) -> JobRecord:
        record = await self.store.get_job(job.report_id)
        if record is None:
            raise JobNotFoundError(f"No report found with ID {job.report_id}")
        if record.status != JobStatus.PENDING:
            raise JobNotPendingError(f"Report {job.report_id} is {record.status.value}, not pending")
        if not is_valid_url(record.web_url):
            await self.store.update_status(record.id, JobStatus.FAILED, "invalid URL")
            raise InvalidURLError(f"Invalid URL for report {record.id}: {record.web_url!r}")
        return record

    async def process(self, job: QueuedJob) -> Optional[Report]:
        """
        Runs one job: load and validate its record, generate the report and
        persist it. Failed jobs are marked failed and not retried.
        """
        logger.info("Processing job %d (report %s)", job.job_id, job.report_id)
        try:
            record = await self._admit(job)
        except AdmissionError as exc:
            logger.warning("Rejected job %d: %s", job.job_id, exc)
            return None
        except StoreError as exc:
            logger.error("Could not load report %s for job %d: %s", job.report_id, job.job_id, exc)
            return None

        try:
            await self.store.update_status(record.id, JobStatus.PROCESSING)
            report = await self.runner(record.web_url, record.report_config)
        except StoreError as exc:
            logger.error("Could not update report %s: %s", record.id, exc)
            return None
        except Exception as exc:
            logger.error("Error generating report for report ID %s: %s", record.id, exc)
            await self._mark_failed(record.id, str(exc) or type(exc).__name__)
            return None

        try:
            await self.store.save_result(record, report)
            await self.store.update_status(record.id, JobStatus.COMPLETED)
        except StoreError as exc:
            logger.error("Error storing report result for report ID %s: %s", record.id, exc)
            await self._mark_failed(record.id, f"could not store result: {exc}")
            return None

        logger.info("Report's result updated for report ID %s", record.id)
        return report

    async def _mark_failed(self, report_id: str, error: str) -> None:
        try:
            await self.store.update_status(report_id, JobStatus.FAILED, error)
        except StoreError as exc:
            logger.error("Could not mark report %s as failed: %s", report_id, exc)

    async def run_worker(self) -> None:
        """
        The single consumer: dequeue, admit, process, forever. A rate-limit
        slot is only taken once a job is in hand.
        """
        logger.info(
            "Job worker started (%d jobs per %ss)", self.limiter.max_jobs, self.limiter.window
        )
        while True:
            job = await self._queue.get()
            try:
                await self.limiter.acquire()
                await self.process(job)
            except Exception:
                logger.exception("Unexpected error processing job %d", job.job_id)
            finally:
                self._queue.task_done()

    def start(self) -> None:
        if self._worker is not None and not self._worker.done():
            raise RuntimeError("Job worker is already running")
        self._worker = asyncio.create_task(self.run_worker(), name="uxlyze-job-worker")

    async def stop(self) -> None:
        if self._worker is None:
            return
        self._worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._worker
        self._worker = None
        logger.info("Job worker stopped")

    async def join(self) -> None:
        await self._queue.join()
