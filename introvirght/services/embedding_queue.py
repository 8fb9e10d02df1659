"""
introvirght.services.embedding_queue — Background Embedding Jobs
=================================================================

Diary writes must not wait on (or fail because of) embedding work.  The
diary handlers enqueue a job and return; a background task runs the
synchronous :class:`VectorService` through :func:`run_db`, retrying with
exponential backoff.  Jobs that still fail are written to
``embedding_dead_letters`` and logged.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from introvirght.database.engine import get_session, run_db
from introvirght.database.models import EmbeddingDeadLetter

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from introvirght.services.vector_service import VectorService

logger = logging.getLogger(__name__)

OPERATIONS = ("store", "update", "delete")


@dataclass
class EmbeddingJob:
    operation: str
    entry_id: str
    user_id: str | None = None
    text: str | None = None
    metadata: dict = field(default_factory=dict)
    attempts: int = 0

    def payload(self) -> dict:
        return {"text": self.text, "metadata": self.metadata}


def record_dead_letter(engine: Engine, job: EmbeddingJob, error: str) -> None:
    with get_session(engine) as session:
        session.add(EmbeddingDeadLetter(
            operation=job.operation,
            entry_id=job.entry_id,
            user_id=job.user_id,
            payload=job.payload(),
            error=error[:2000],
            attempts=job.attempts,
        ))


class EmbeddingQueue:
    """Fire-and-forget queue of embedding jobs with retry and dead-lettering."""

    def __init__(
        self,
        engine: Engine,
        vectors: VectorService,
        *,
        max_attempts: int = 3,
        backoff: float = 1.0,
    ) -> None:
        self._engine = engine
        self._vectors = vectors
        self.max_attempts = max(1, max_attempts)
        self.backoff = backoff
        self._queue: asyncio.Queue[EmbeddingJob] = asyncio.Queue()
        self._worker_task: asyncio.Task | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    def __len__(self) -> int:
        return self._queue.qsize()

    # -------------------------------------------------------------------
    # Producers — never raise into the caller
    # -------------------------------------------------------------------
    def enqueue(self, job: EmbeddingJob) -> bool:
        if job.operation not in OPERATIONS:
            logger.error("Dropping embedding job with unknown operation %r", job.operation)
            return False
        try:
            if self._on_worker_loop():
                self._queue.put_nowait(job)
            else:
                # asyncio.Queue is not thread-safe; wake the worker from its own loop
                self._loop.call_soon_threadsafe(self._queue.put_nowait, job)
        except Exception:
            logger.exception("Could not enqueue embedding job for entry %s", job.entry_id)
            return False
        return True

    def _on_worker_loop(self) -> bool:
        if self._loop is None:
            return True
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def schedule_store(self, entry_id: str, user_id: str, text: str, metadata: dict | None = None) -> bool:
        return self.enqueue(EmbeddingJob("store", entry_id, user_id, text, dict(metadata or {})))

    def schedule_update(self, entry_id: str, user_id: str, text: str, metadata: dict | None = None) -> bool:
        return self.enqueue(EmbeddingJob("update", entry_id, user_id, text, dict(metadata or {})))

    def schedule_delete(self, entry_id: str) -> bool:
        return self.enqueue(EmbeddingJob("delete", entry_id))

    # -------------------------------------------------------------------
    # Consumer
    # -------------------------------------------------------------------
    def _execute(self, job: EmbeddingJob) -> None:
        if job.operation == "delete":
            self._vectors.delete(job.entry_id)
        elif job.operation == "update":
            self._vectors.update(job.entry_id, job.user_id, job.text or "", job.metadata)
        else:
            self._vectors.store(job.entry_id, job.user_id, job.text or "", job.metadata)

    async def run_job(self, job: EmbeddingJob) -> bool:
        """Run *job* with retries.  Returns False if it was dead-lettered."""
        last_error = ""
        while job.attempts < self.max_attempts:
            job.attempts += 1
            try:
                await run_db(self._execute, job)
                return True
            except Exception as exc:
                last_error = f"{exc.__class__.__name__}: {exc}"
                logger.warning(
                    "Embedding %s for entry %s failed (attempt %d/%d): %s",
                    job.operation, job.entry_id, job.attempts, self.max_attempts, last_error,
                )
                if job.attempts < self.max_attempts and self.backoff > 0:
                    await asyncio.sleep(self.backoff * 2 ** (job.attempts - 1))

        logger.error(
            "Embedding %s for entry %s dead-lettered after %d attempts",
            job.operation, job.entry_id, job.attempts,
        )
        try:
            await run_db(record_dead_letter, self._engine, job, last_error)
        except Exception:
            logger.exception("Failed to record dead letter for entry %s", job.entry_id)
        return False

    async def drain_once(self) -> int:
        """Run every job currently queued.  Returns how many succeeded."""
        succeeded = 0
        while not self._queue.empty():
            job = self._queue.get_nowait()
            try:
                if await self.run_job(job):
                    succeeded += 1
            finally:
                self._queue.task_done()
        return succeeded

    def start(self, loop: asyncio.AbstractEventLoop) -> None:
        """Start the background worker task."""
        if self._worker_task is not None:
            return

        async def _worker() -> None:
            while True:
                job = await self._queue.get()
                try:
                    await self.run_job(job)
                except Exception:
                    logger.exception("Embedding worker error")
                finally:
                    self._queue.task_done()

        self._loop = loop
        self._worker_task = loop.create_task(_worker(), name="embedding-worker")

    def stop(self) -> None:
        """Cancel the worker task.  Jobs still queued stay queued."""
        if self._worker_task:
            self._worker_task.cancel()
            self._worker_task = None
        self._loop = None
