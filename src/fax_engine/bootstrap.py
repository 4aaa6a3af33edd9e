"""Wires the engine together with the default SQLite adapters.

The vision service, agent, renderer and transport are deployment specific
and must be supplied by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from fax_engine.config.settings import Settings
from fax_engine.context.recovery import ContextRecoveryResolver
from fax_engine.errors.handler import FaxErrorHandler
from fax_engine.errors.notifications import ErrorFaxNotifier, OperatorAlerter
from fax_engine.exceptions import ConfigurationError
from fax_engine.media.downloader import HttpMediaDownloader
from fax_engine.observability.audit import AuditRecorder
from fax_engine.observability.logger import get_logger, setup_logging
from fax_engine.pipeline.fax_pipeline import FaxProcessingPipeline
from fax_engine.pipeline.post_actions import PostActionRunner
from fax_engine.pipeline.worker import FaxJobRunner
from fax_engine.protocols.agent import ActionAgent
from fax_engine.protocols.media import MediaDownloader
from fax_engine.protocols.renderer import ResponseRenderer
from fax_engine.protocols.transport import FaxTransport
from fax_engine.protocols.vision import VisionInterpreter
from fax_engine.storage.migrations import initialize_db
from fax_engine.storage.sqlite_audit_log import SQLiteAuditLog
from fax_engine.storage.sqlite_context_store import SQLiteContextStore
from fax_engine.storage.sqlite_job_store import SQLiteJobStore
from fax_engine.storage.sqlite_user_store import SQLiteUserStore

logger = get_logger("bootstrap")


@dataclass
class FaxEngine:
    runner: FaxJobRunner
    pipeline: FaxProcessingPipeline
    user_store: SQLiteUserStore
    context_store: SQLiteContextStore
    job_store: SQLiteJobStore
    audit_log: SQLiteAuditLog
    audit: AuditRecorder


def validate_settings(settings: Settings) -> None:
    if settings.worker_concurrency < 1:
        raise ConfigurationError("worker_concurrency must be at least 1")
    if settings.context_recovery_window_days < 1:
        raise ConfigurationError("context_recovery_window_days must be at least 1")
    if not settings.service_fax_number:
        raise ConfigurationError("service_fax_number is required")


async def create_engine(
    interpreter: VisionInterpreter,
    agent: ActionAgent,
    renderer: ResponseRenderer,
    transport: FaxTransport,
    settings: Settings | None = None,
    downloader: MediaDownloader | None = None,
) -> FaxEngine:
    settings = settings or Settings()
    validate_settings(settings)
    setup_logging(settings.log_level, json_output=settings.log_json)

    # Ensure data directory exists
    Path(settings.sqlite_db_path).parent.mkdir(parents=True, exist_ok=True)
    await initialize_db(settings.sqlite_db_path)

    # Storage
    user_store = SQLiteUserStore(settings.sqlite_db_path)
    context_store = SQLiteContextStore(settings.sqlite_db_path)
    job_store = SQLiteJobStore(settings.sqlite_db_path)
    audit_log = SQLiteAuditLog(settings.sqlite_db_path)
    audit = AuditRecorder(audit_log)

    # Error handling
    error_handler = FaxErrorHandler(
        notifier=ErrorFaxNotifier(renderer, transport, settings),
        alerter=OperatorAlerter(audit),
        audit=audit,
    )

    pipeline = FaxProcessingPipeline(
        downloader=downloader or HttpMediaDownloader(settings),
        user_store=user_store,
        interpreter=interpreter,
        context_resolver=ContextRecoveryResolver(context_store, audit, settings),
        agent=agent,
        renderer=renderer,
        transport=transport,
        error_handler=error_handler,
        job_store=job_store,
        post_actions=PostActionRunner(user_store, renderer, transport, audit),
        audit=audit,
    )
    runner = FaxJobRunner(pipeline, job_store, settings, audit)

    logger.info(
        "engine_ready",
        db_path=settings.sqlite_db_path,
        worker_concurrency=settings.worker_concurrency,
    )
    return FaxEngine(
        runner=runner,
        pipeline=pipeline,
        user_store=user_store,
        context_store=context_store,
        job_store=job_store,
        audit_log=audit_log,
        audit=audit,
    )
