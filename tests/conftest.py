"""Shared test fixtures and in-memory fakes for every collaborator."""

from __future__ import annotations

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest

from fax_engine.config.settings import Settings
from fax_engine.context.recovery import ContextRecoveryResolver
from fax_engine.errors.handler import FaxErrorHandler
from fax_engine.errors.notifications import ErrorFaxNotifier, OperatorAlerter
from fax_engine.models.domain import (
    AgentResponse,
    BoundingBox,
    ConversationContext,
    FaxTemplate,
    InterpretationResult,
    SendResult,
    User,
    VisualAnnotation,
)
from fax_engine.models.enums import AnnotationType, Intent, JobStatus
from fax_engine.models.parameters import EmailParameters
from fax_engine.models.schemas import FaxJobData
from fax_engine.observability.audit import AuditRecorder
from fax_engine.pipeline.fax_pipeline import FaxProcessingPipeline
from fax_engine.pipeline.post_actions import PostActionRunner


class Scripted:
    """Plays back outcomes in order; the last one repeats. Exceptions are raised."""

    def __init__(self, *outcomes: Any) -> None:
        self.outcomes = list(outcomes)
        self.calls = 0

    def next(self) -> Any:
        self.calls += 1
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeAuditSink:
    def __init__(self, fail: bool = False) -> None:
        self.events: list[dict] = []
        self.fail = fail

    async def record(
        self, entity_type: str, entity_id: str, operation: str, details: dict[str, Any]
    ) -> None:
        if self.fail:
            raise RuntimeError("audit sink down")
        self.events.append(
            {
                "entity_type": entity_type,
                "entity_id": entity_id,
                "operation": operation,
                "details": details,
            }
        )

    def operations(self) -> list[str]:
        return [e["operation"] for e in self.events]


class FakeContextStore:
    def __init__(self, contexts: list[ConversationContext] | None = None) -> None:
        self.contexts = list(contexts or [])
        self.calls: list[str] = []
        self.fail = False

    async def find_by_id(self, context_id: str) -> ConversationContext | None:
        self.calls.append("find_by_id")
        return next((c for c in self.contexts if c.id == context_id), None)

    async def find_by_reference_id(
        self, reference_id: str, user_id: str
    ) -> ConversationContext | None:
        self.calls.append("find_by_reference_id")
        return next(
            (c for c in self.contexts if c.reference_id == reference_id and c.user_id == user_id),
            None,
        )

    async def find_recent_by_user(
        self, user_id: str, window: timedelta
    ) -> list[ConversationContext]:
        self.calls.append("find_recent_by_user")
        if self.fail:
            raise RuntimeError("context store unavailable")
        cutoff = datetime.now(timezone.utc) - window
        return [c for c in self.contexts if c.user_id == user_id and c.created_at >= cutoff]


class FakeUserStore:
    def __init__(self) -> None:
        self.users: dict[str, User] = {}
        self.preference_updates: list[tuple[str, dict]] = []
        self.script: Scripted | None = None

    async def find_or_create(self, phone_number: str) -> tuple[User, bool]:
        if self.script is not None:
            self.script.next()
        if phone_number in self.users:
            return self.users[phone_number], False
        user = User(id=f"user-{len(self.users) + 1}", phone_number=phone_number)
        self.users[phone_number] = user
        return user, True

    async def update_preferences(self, user_id: str, preferences: dict[str, Any]) -> None:
        self.preference_updates.append((user_id, preferences))
        for user in self.users.values():
            if user.id == user_id:
                user.preferences.update(preferences)


class FakeDownloader:
    def __init__(self, *outcomes: Any) -> None:
        self.script = Scripted(*(outcomes or (b"fax-image",)))

    async def download(self, media_url: str) -> bytes:
        return self.script.next()


class FakeVision:
    def __init__(self, *outcomes: Any) -> None:
        self.script = Scripted(*(outcomes or (make_interpretation(),)))

    async def interpret(self, image_bytes: bytes, user_id: str) -> InterpretationResult:
        return self.script.next()


class FakeAgent:
    def __init__(self, *outcomes: Any) -> None:
        self.script = Scripted(*(outcomes or (make_agent_response(),)))
        self.seen: list[InterpretationResult] = []

    async def process(
        self, interpretation: InterpretationResult, user_id: str, job_id: str
    ) -> AgentResponse:
        self.seen.append(interpretation)
        return self.script.next()


class FakeRenderer:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict, str]] = []
        self.fail_templates: set[str] = set()

    async def generate(self, template_type: str, data: dict[str, Any], reference_id: str) -> list[bytes]:
        self.calls.append((template_type, data, reference_id))
        if template_type in self.fail_templates:
            raise RuntimeError(f"cannot render {template_type}")
        return [f"{template_type}:{reference_id}".encode()]

    def templates(self) -> list[str]:
        return [c[0] for c in self.calls]


class FakeTransport:
    def __init__(self) -> None:
        self.sent: list[tuple[str, list[bytes], str]] = []
        self.script: Scripted | None = None

    async def send(self, to: str, pages: list[bytes], reference_id: str) -> SendResult:
        if self.script is not None:
            self.script.next()
        self.sent.append((to, pages, reference_id))
        return SendResult(fax_id=f"fax-out-{len(self.sent)}")


class FakeJobStore:
    def __init__(self) -> None:
        self.updates: list[tuple[str, JobStatus, dict]] = []

    async def update_status(
        self, job_id: str, status: JobStatus, metadata: dict[str, Any] | None = None
    ) -> None:
        self.updates.append((job_id, status, metadata or {}))

    def statuses(self) -> list[JobStatus]:
        return [u[1] for u in self.updates]


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def make_interpretation(**overrides: Any) -> InterpretationResult:
    fields: dict[str, Any] = {
        "intent": Intent.EMAIL,
        "confidence": 0.9,
        "parameters": EmailParameters(recipient_email="tanaka@example.com", body="see you soon"),
        "extracted_text": "email to tanaka@example.com see you soon",
    }
    fields.update(overrides)
    return InterpretationResult(**fields)


def make_agent_response(reference_id: str = "FX-2025-000001") -> AgentResponse:
    return AgentResponse(
        success=True,
        response_type="completion",
        fax_template=FaxTemplate(type="email_confirmation", reference_id=reference_id),
    )


def make_context(
    context_id: str,
    user_id: str = "user-1",
    reference_id: str = "FX-2025-000100",
    age: timedelta = timedelta(days=1),
    ttl: timedelta = timedelta(days=7),
    context_data: dict | None = None,
) -> ConversationContext:
    created = datetime.now(timezone.utc) - age
    return ConversationContext(
        id=context_id,
        user_id=user_id,
        reference_id=reference_id,
        context_type="email_reply",
        context_data=context_data or {},
        created_at=created,
        expires_at=created + ttl,
    )


def circle(text: str, confidence: float = 0.9, type: AnnotationType = AnnotationType.CIRCLE) -> VisualAnnotation:
    return VisualAnnotation(
        type=type,
        bounding_box=BoundingBox(x=0, y=0, width=10, height=10),
        associated_text=text,
        confidence=confidence,
    )


@pytest.fixture
def settings():
    """Test settings with temp paths."""
    tmp = tempfile.mkdtemp()
    return Settings(
        sqlite_db_path=str(Path(tmp) / "test_fax.db"),
        service_fax_number="+81-3-9999-0000",
    )


@pytest.fixture
def fax_job():
    return FaxJobData(
        fax_id="fax-in-1",
        from_number="+81-3-5555-0101",
        to_number="+81-3-9999-0000",
        media_url="https://media.example.com/fax-in-1.tiff",
        page_count=1,
    )


@pytest.fixture
def audit_sink():
    return FakeAuditSink()


@pytest.fixture
def audit(audit_sink):
    return AuditRecorder(audit_sink)


@pytest.fixture
def kit(settings, audit, audit_sink):
    """A pipeline wired entirely with fakes. Replace fakes before building."""
    ns = SimpleNamespace(
        settings=settings,
        audit=audit,
        audit_sink=audit_sink,
        downloader=FakeDownloader(),
        users=FakeUserStore(),
        vision=FakeVision(),
        contexts=FakeContextStore(),
        agent=FakeAgent(),
        renderer=FakeRenderer(),
        transport=FakeTransport(),
        jobs=FakeJobStore(),
        sleep=RecordingSleep(),
    )

    def build() -> FaxProcessingPipeline:
        ns.error_handler = FaxErrorHandler(
            ErrorFaxNotifier(ns.renderer, ns.transport, ns.settings),
            OperatorAlerter(ns.audit),
            ns.audit,
        )
        return FaxProcessingPipeline(
            downloader=ns.downloader,
            user_store=ns.users,
            interpreter=ns.vision,
            context_resolver=ContextRecoveryResolver(ns.contexts, ns.audit, ns.settings),
            agent=ns.agent,
            renderer=ns.renderer,
            transport=ns.transport,
            error_handler=ns.error_handler,
            job_store=ns.jobs,
            post_actions=PostActionRunner(ns.users, ns.renderer, ns.transport, ns.audit),
            audit=ns.audit,
            sleep=ns.sleep,
        )

    ns.build = build
    return ns
