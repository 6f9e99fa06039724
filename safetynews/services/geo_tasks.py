"""
Background geo-processing jobs.

Every job is an explicit asyncio task with its own error channel: status,
result and error are recorded on the GeoJob, and callers can ``await
job.wait()``. Concurrency is bounded by a semaphore.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Optional

import structlog

from safetynews.config import settings
from safetynews.services.agents import GeoAgent

logger = structlog.get_logger(__name__)


class GeoJobStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class GeoJob:
    job_id: str
    query: str
    result_count: int
    status: GeoJobStatus = GeoJobStatus.PENDING
    result: Optional[dict] = None
    error: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None
    _task: Optional[asyncio.Task] = field(default=None, repr=False)

    @property
    def done(self) -> bool:
        return self.status in (GeoJobStatus.SUCCEEDED, GeoJobStatus.FAILED)

    async def wait(self) -> "GeoJob":
        """Block until the job finishes; never raises the job's own error."""
        if self._task is not None:
            await asyncio.wait({self._task})
        return self

    def to_dict(self) -> dict:
        return {
            "jobId": self.job_id,
            "query": self.query,
            "searchResults": self.result_count,
            "status": self.status.value,
            "result": self.result,
            "error": self.error,
            "createdAt": self.created_at.isoformat(),
            "finishedAt": self.finished_at.isoformat() if self.finished_at else None,
        }


class GeoTaskQueue:
    def __init__(self, agent: GeoAgent, concurrency: Optional[int] = None, max_jobs: int = 256):
        self.agent = agent
        self._semaphore = asyncio.Semaphore(concurrency or settings.geo_task_concurrency)
        self._jobs: dict[str, GeoJob] = {}
        self.max_jobs = max_jobs

    def submit(self, query: str, search_results: list) -> GeoJob:
        job = GeoJob(job_id=uuid.uuid4().hex, query=query, result_count=len(search_results))
        self._prune()
        self._jobs[job.job_id] = job
        job._task = asyncio.create_task(self._run(job, query, list(search_results)))
        logger.info("geo_job_submitted", job_id=job.job_id, query=query, results=job.result_count)
        return job

    def get(self, job_id: str) -> Optional[GeoJob]:
        return self._jobs.get(job_id)

    @property
    def jobs(self) -> list[GeoJob]:
        return list(self._jobs.values())

    def _prune(self) -> None:
        """Forget the oldest finished jobs once over capacity."""
        finished = [j for j in self._jobs.values() if j.done]
        while len(self._jobs) >= self.max_jobs and finished:
            self._jobs.pop(finished.pop(0).job_id, None)

    async def _run(self, job: GeoJob, query: str, search_results: list) -> None:
        async with self._semaphore:
            job.status = GeoJobStatus.RUNNING
            try:
                job.result = await self.agent.process(query, search_results)
            except asyncio.CancelledError:
                job.status = GeoJobStatus.FAILED
                job.error = "cancelled"
                raise
            except Exception as exc:
                job.status = GeoJobStatus.FAILED
                job.error = f"{type(exc).__name__}: {exc}"
                logger.error("geo_job_failed", job_id=job.job_id, error=job.error, exc_info=True)
            else:
                job.status = GeoJobStatus.SUCCEEDED
                logger.info("geo_job_succeeded", job_id=job.job_id)
            finally:
                job.finished_at = datetime.now(timezone.utc)

    async def shutdown(self) -> None:
        """Cancel unfinished jobs and wait for them to settle."""
        pending = [j._task for j in self._jobs.values() if j._task is not None and not j._task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        logger.info("geo_queue_shutdown", cancelled=len(pending))
