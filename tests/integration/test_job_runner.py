"""End-to-end job runs against the SQLite stores with faked external services."""

import pytest

from conftest import FakeVision
from fax_engine.context.recovery import ContextRecoveryResolver
from fax_engine.errors.handler import FaxErrorHandler
from fax_engine.errors.notifications import ErrorFaxNotifier, OperatorAlerter
from fax_engine.models.enums import JobStatus
from fax_engine.models.schemas import FaxJobData
from fax_engine.observability.audit import AuditRecorder
from fax_engine.pipeline.fax_pipeline import FaxProcessingPipeline
from fax_engine.pipeline.post_actions import PostActionRunner
from fax_engine.pipeline.worker import FaxJobRunner
from fax_engine.storage.sqlite_audit_log import SQLiteAuditLog
from fax_engine.storage.sqlite_context_store import SQLiteContextStore
from fax_engine.storage.sqlite_job_store import SQLiteJobStore
from fax_engine.storage.sqlite_user_store import SQLiteUserStore


@pytest.fixture
async def stores(settings):
    db = settings.sqlite_db_path
    users = SQLiteUserStore(db)
    await users.initialize()
    return users, SQLiteContextStore(db), SQLiteJobStore(db), SQLiteAuditLog(db)


@pytest.fixture
def runner_factory(kit, settings, stores):
    users, contexts, jobs, audit_log = stores
    audit = AuditRecorder(audit_log)

    def build(progress=None):
        error_handler = FaxErrorHandler(
            ErrorFaxNotifier(kit.renderer, kit.transport, settings),
            OperatorAlerter(audit),
            audit,
        )
        pipeline = FaxProcessingPipeline(
            downloader=kit.downloader,
            user_store=users,
            interpreter=kit.vision,
            context_resolver=ContextRecoveryResolver(contexts, audit, settings),
            agent=kit.agent,
            renderer=kit.renderer,
            transport=kit.transport,
            error_handler=error_handler,
            job_store=jobs,
            post_actions=PostActionRunner(users, kit.renderer, kit.transport, audit),
            audit=audit,
            sleep=kit.sleep,
        )
        return FaxJobRunner(pipeline, jobs, settings, audit, on_progress=progress)

    return build


@pytest.mark.asyncio
async def test_successful_job_is_completed(runner_factory, stores, kit, fax_job):
    users, _, jobs, audit_log = stores
    progress = []
    runner = runner_factory(lambda job_id, percent: progress.append(percent))

    result = await runner.process(fax_job)

    assert result.success
    status, metadata = await jobs.get_status(fax_job.fax_id)
    assert status == JobStatus.COMPLETED
    assert metadata["response_reference_id"] == "FX-2025-000001"
    assert progress[0] == 0 and progress[-1] == 100
    assert max(progress[1:-1]) == 90

    user, created = await users.find_or_create(fax_job.from_number)
    assert not created
    assert user.preferences["onboarding_fax_sent"] is True

    operations = [e["operation"] for e in await audit_log.recent()]
    assert "processing_start" in operations
    assert "processing_complete" in operations


@pytest.mark.asyncio
async def test_failed_job_keeps_pipeline_details(runner_factory, stores, kit, fax_job):
    _, _, jobs, _ = stores
    kit.vision = FakeVision(RuntimeError("Low confidence in interpretation"))
    runner = runner_factory()

    result = await runner.process(fax_job)

    assert not result.success
    status, metadata = await jobs.get_status(fax_job.fax_id)
    assert status == JobStatus.FAILED
    assert metadata["error_type"] == "user_facing"
    assert metadata["stage"] == "interpretation"
    assert kit.renderer.templates() == ["error"]


@pytest.mark.asyncio
async def test_process_many_runs_every_job(runner_factory, stores, fax_job):
    _, _, jobs, _ = stores
    other = FaxJobData(
        fax_id="fax-in-2",
        from_number="+81-3-5555-0202",
        to_number=fax_job.to_number,
        media_url=fax_job.media_url,
    )

    results = await runner_factory().process_many([fax_job, other])

    assert all(r.success for r in results)
    for job_id in ("fax-in-1", "fax-in-2"):
        status, _ = await jobs.get_status(job_id)
        assert status == JobStatus.COMPLETED


@pytest.mark.asyncio
async def test_crashing_pipeline_marks_job_failed_and_reraises(stores, settings, fax_job):
    _, _, jobs, _ = stores

    class CrashingPipeline:
        async def process_fax(self, job, options=None):
            raise RuntimeError("worker lost its database")

    runner = FaxJobRunner(CrashingPipeline(), jobs, settings)
    with pytest.raises(RuntimeError):
        await runner.process(fax_job)

    status, metadata = await jobs.get_status(fax_job.fax_id)
    assert status == JobStatus.FAILED
    assert metadata["error_message"] == "worker lost its database"


@pytest.mark.asyncio
async def test_failing_status_write_does_not_mask_job_error(settings, fax_job):
    class FlakyJobStore:
        async def update_status(self, job_id, status, metadata=None):
            if status == JobStatus.FAILED:
                raise OSError("database is locked")

        async def get_status(self, job_id):
            return None

    class CrashingPipeline:
        async def process_fax(self, job, options=None):
            raise RuntimeError("worker lost its database")

    runner = FaxJobRunner(CrashingPipeline(), FlakyJobStore(), settings)
    with pytest.raises(RuntimeError, match="worker lost its database"):
        await runner.process(fax_job)
