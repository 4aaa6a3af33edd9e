"""Drives queued fax jobs through the pipeline.

The queue itself is external. A consumer hands each delivered job to
``FaxJobRunner.process``; an exception escaping it means the queue should
redeliver.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from typing import Any

import structlog

from fax_engine.config.settings import Settings
from fax_engine.models.domain import FaxProcessingResult
from fax_engine.models.enums import JobStatus
from fax_engine.models.schemas import FaxJobData
from fax_engine.observability.audit import AuditRecorder
from fax_engine.observability.logger import get_logger
from fax_engine.pipeline.fax_pipeline import FaxProcessingOptions, FaxProcessingPipeline
from fax_engine.protocols.job_store import JobStore

logger = get_logger("worker")

# The last stretch is reserved for the runner's own bookkeeping.
PIPELINE_PROGRESS_CAP = 90


class FaxJobRunner:
    def __init__(
        self,
        pipeline: FaxProcessingPipeline,
        job_store: JobStore,
        settings: Settings,
        audit: AuditRecorder | None = None,
        on_progress: Callable[[str, int], Any] | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._jobs = job_store
        self._settings = settings
        self._audit = audit
        self._on_progress = on_progress

    async def process(self, job: FaxJobData) -> FaxProcessingResult:
        with structlog.contextvars.bound_contextvars(job_id=job.fax_id):
            try:
                return await self._process(job)
            except Exception as e:
                logger.error("job_failed", error=str(e), exc_info=True)
                await self._mark_failed(job.fax_id, e)
                raise

    async def _process(self, job: FaxJobData) -> FaxProcessingResult:
        self._progress(job.fax_id, 0)
        await self._record(
            job.fax_id,
            "processing_start",
            {
                "from_number": job.from_number,
                "to_number": job.to_number,
                "page_count": job.page_count,
            },
        )
        await self._jobs.update_status(job.fax_id, JobStatus.PROCESSING)
        self._progress(job.fax_id, 10)

        result = await self._pipeline.process_fax(
            job,
            FaxProcessingOptions(
                on_progress=lambda percent: self._progress(
                    job.fax_id, min(percent, PIPELINE_PROGRESS_CAP)
                )
            ),
        )
        self._progress(job.fax_id, 100)

        # Failed jobs were already marked by the pipeline with stage details.
        if result.success:
            await self._jobs.update_status(
                job.fax_id,
                JobStatus.COMPLETED,
                {
                    "response_reference_id": result.response_reference_id,
                    "response_fax_id": result.response_fax_id,
                },
            )

        await self._record(
            job.fax_id,
            "processing_complete",
            {
                "success": result.success,
                "response_reference_id": result.response_reference_id,
                "response_fax_id": result.response_fax_id,
                "error_message": result.error_message,
            },
        )
        logger.info("job_finished", success=result.success)
        return result

    async def process_many(self, jobs: Iterable[FaxJobData]) -> list[FaxProcessingResult | BaseException]:
        """Run jobs with bounded concurrency. Failures are returned, not raised."""
        semaphore = asyncio.Semaphore(max(1, self._settings.worker_concurrency))

        async def run_one(job: FaxJobData) -> FaxProcessingResult:
            async with semaphore:
                return await self.process(job)

        return await asyncio.gather(*(run_one(j) for j in jobs), return_exceptions=True)

    async def _mark_failed(self, job_id: str, error: Exception) -> None:
        """Best-effort failure bookkeeping; the job error is what gets re-raised."""
        try:
            await self._jobs.update_status(job_id, JobStatus.FAILED, {"error_message": str(error)})
            await self._record(job_id, "processing_failed", {"error": str(error)})
        except Exception:
            logger.warning("failure_bookkeeping_failed", exc_info=True)

    def _progress(self, job_id: str, percent: int) -> None:
        if self._on_progress is not None:
            self._on_progress(job_id, percent)

    async def _record(self, job_id: str, operation: str, details: dict) -> None:
        if self._audit is not None:
            await self._audit.write("fax_job", job_id, operation, details)
