"""
Background email dispatch

Requests only enqueue; worker tasks deliver with retry and exponential
backoff. Jobs that exhaust their retries are logged and counted, never raised.
"""

import asyncio
import logging
from typing import List, Optional

from pydantic import BaseModel

from app.core import config
from app.notifications.mailer import EmailKind

logger = logging.getLogger(__name__)


class EmailJob(BaseModel):
    kind: EmailKind
    recipient: str
    data: dict = {}
    attempts: int = 0


class QueueStats(BaseModel):
    enqueued: int = 0
    sent: int = 0
    retried: int = 0
    failed: int = 0


class NotificationQueue:

    def __init__(
        self,
        mailer,
        max_retries: int = None,
        base_delay: float = None,
        maxsize: int = None,
        workers: int = None
    ):
        self.mailer = mailer
        self.max_retries = config.EMAIL_MAX_RETRIES if max_retries is None else max_retries
        self.base_delay = config.EMAIL_RETRY_BASE_SECONDS if base_delay is None else base_delay
        self.worker_count = workers or config.EMAIL_WORKERS
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize or config.EMAIL_QUEUE_SIZE)
        self._workers: List[asyncio.Task] = []
        self.stats = QueueStats()

    @property
    def running(self) -> bool:
        return bool(self._workers)

    async def start(self) -> None:
        if self._workers:
            return
        for index in range(self.worker_count):
            self._workers.append(asyncio.create_task(self._worker(index)))
        logger.info(f"✅ Notification queue started ({self.worker_count} workers)")

    async def stop(self, drain: bool = True, timeout: float = None) -> None:
        """
        Waits at most `timeout` seconds for queued mail, then cancels the
        workers. Whatever is still queued or in flight is counted as failed.
        """
        timeout = config.EMAIL_SHUTDOWN_TIMEOUT_SECONDS if timeout is None else timeout
        if drain and self._workers:
            try:
                await asyncio.wait_for(self._queue.join(), timeout)
            except asyncio.TimeoutError:
                logger.warning(f"⚠️ Notification queue not drained after {timeout:.0f}s, stopping anyway")

        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []

        abandoned = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            abandoned += 1
        if abandoned:
            self.stats.failed += abandoned
            logger.error(f"❌ {abandoned} queued emails dropped at shutdown")
        logger.info("Notification queue stopped")

    async def join(self) -> None:
        await self._queue.join()

    def enqueue(self, kind: EmailKind, recipient: Optional[str], data: dict = None) -> bool:
        if not recipient:
            logger.warning(f"⚠️ Skipping {kind.value} email: no recipient")
            return False

        job = EmailJob(kind=kind, recipient=recipient, data=data or {})
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            self.stats.failed += 1
            logger.error(f"❌ Notification queue full, dropped {kind.value} email to {recipient}")
            return False

        self.stats.enqueued += 1
        return True

    async def _worker(self, index: int) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self._deliver(job)
            except asyncio.CancelledError:
                self.stats.failed += 1
                logger.error(f"❌ {job.kind.value} email to {job.recipient} abandoned at shutdown")
                raise
            finally:
                self._queue.task_done()

    async def _deliver(self, job: EmailJob) -> None:
        while True:
            job.attempts += 1
            try:
                await self.mailer.send(job.kind, job.recipient, job.data)
                self.stats.sent += 1
                return
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if job.attempts > self.max_retries:
                    self.stats.failed += 1
                    logger.error(
                        f"❌ {job.kind.value} email to {job.recipient} failed after "
                        f"{job.attempts} attempts: {e}"
                    )
                    return

                delay = self.base_delay * (2 ** (job.attempts - 1))
                self.stats.retried += 1
                logger.warning(
                    f"⚠️ {job.kind.value} email to {job.recipient} failed "
                    f"(attempt {job.attempts}), retrying in {delay:.1f}s: {e}"
                )
                await asyncio.sleep(delay)
