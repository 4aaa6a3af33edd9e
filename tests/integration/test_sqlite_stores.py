"""Integration tests for the SQLite user, context, job and audit stores."""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_context
from fax_engine.models.enums import ErrorType, JobStatus
from fax_engine.storage.sqlite_audit_log import SQLiteAuditLog
from fax_engine.storage.sqlite_context_store import SQLiteContextStore
from fax_engine.storage.sqlite_job_store import SQLiteJobStore
from fax_engine.storage.sqlite_user_store import SQLiteUserStore


@pytest.fixture
async def user_store(settings):
    store = SQLiteUserStore(settings.sqlite_db_path)
    await store.initialize()
    return store


@pytest.fixture
async def context_store(settings):
    store = SQLiteContextStore(settings.sqlite_db_path)
    await store.initialize()
    return store


@pytest.fixture
async def job_store(settings):
    store = SQLiteJobStore(settings.sqlite_db_path)
    await store.initialize()
    return store


@pytest.fixture
async def audit_log(settings):
    store = SQLiteAuditLog(settings.sqlite_db_path)
    await store.initialize()
    return store


@pytest.mark.asyncio
async def test_find_or_create_user(user_store):
    user, created = await user_store.find_or_create("+81-3-5555-0101")
    again, created_again = await user_store.find_or_create("+81-3-5555-0101")

    assert created
    assert not created_again
    assert again.id == user.id
    assert again.preferences == {}


@pytest.mark.asyncio
async def test_update_preferences_merges(user_store):
    user, _ = await user_store.find_or_create("+81-3-5555-0101")
    await user_store.update_preferences(user.id, {"onboarding_fax_sent": True})
    await user_store.update_preferences(user.id, {"language": "ja"})

    stored = await user_store.find_by_id(user.id)
    assert stored.preferences == {"onboarding_fax_sent": True, "language": "ja"}


@pytest.mark.asyncio
async def test_update_preferences_unknown_user(user_store):
    with pytest.raises(KeyError):
        await user_store.update_preferences("missing", {"a": 1})


@pytest.mark.asyncio
async def test_save_and_find_context(context_store):
    context = make_context("ctx-1", reference_id="fx-2025-000100", context_data={"is_onboarding_fax": True})
    await context_store.save(context)

    by_id = await context_store.find_by_id("ctx-1")
    assert by_id.reference_id == "FX-2025-000100"
    assert by_id.context_data == {"is_onboarding_fax": True}
    assert by_id.created_at == context.created_at
    assert by_id.created_at.tzinfo is not None


@pytest.mark.asyncio
async def test_find_by_reference_id_is_scoped_and_case_insensitive(context_store):
    await context_store.save(make_context("ctx-a", user_id="user-1", reference_id="FX-2025-000200"))
    await context_store.save(make_context("ctx-b", user_id="user-2", reference_id="FX-2025-000200"))

    found = await context_store.find_by_reference_id("fx-2025-000200", "user-2")
    assert found.id == "ctx-b"
    assert await context_store.find_by_reference_id("FX-2025-000200", "user-3") is None


@pytest.mark.asyncio
async def test_find_recent_by_user(context_store):
    await context_store.save(make_context("ctx-new", age=timedelta(hours=1)))
    await context_store.save(make_context("ctx-older", age=timedelta(days=2)))
    await context_store.save(make_context("ctx-stale", age=timedelta(days=10), ttl=timedelta(days=30)))
    await context_store.save(make_context("ctx-expired", age=timedelta(days=2), ttl=timedelta(days=1)))
    await context_store.save(make_context("ctx-other", user_id="user-2"))

    recent = await context_store.find_recent_by_user("user-1", timedelta(days=7))
    assert [c.id for c in recent] == ["ctx-new", "ctx-older"]


@pytest.mark.asyncio
async def test_job_status_round_trip(job_store):
    assert await job_store.get_status("fax-in-1") is None

    await job_store.update_status("fax-in-1", JobStatus.PROCESSING)
    await job_store.update_status(
        "fax-in-1",
        JobStatus.FAILED,
        {"error_type": ErrorType.TEMPORARY, "retry_count": 1},
    )

    status, metadata = await job_store.get_status("fax-in-1")
    assert status == JobStatus.FAILED
    assert metadata == {"error_type": "temporary", "retry_count": 1}


@pytest.mark.asyncio
async def test_audit_log_records_newest_first(audit_log):
    await audit_log.record("fax_job", "fax-in-1", "processing_start", {"page_count": 1})
    await audit_log.record(
        "fax_job", "fax-in-1", "processing_complete", {"at": datetime(2025, 1, 1, tzinfo=timezone.utc)}
    )

    entries = await audit_log.recent()
    assert [e["operation"] for e in entries] == ["processing_complete", "processing_start"]
    assert entries[0]["details"]["at"].startswith("2025-01-01")
