"""Follow-up faxes sent after a successful pipeline run.

Each action is best effort. A failure is logged and audited but never
turns a successful result into a failure. The onboarding flag is read
before sending and written only after a successful send, so a crash in
between can produce a duplicate onboarding fax.
"""

from __future__ import annotations

from datetime import datetime, timezone

from fax_engine.models.domain import InterpretationResult, User
from fax_engine.models.enums import Intent
from fax_engine.models.parameters import ReplyParameters
from fax_engine.observability.audit import AuditRecorder
from fax_engine.observability.logger import get_logger
from fax_engine.protocols.renderer import ResponseRenderer
from fax_engine.protocols.transport import FaxTransport
from fax_engine.protocols.user_store import UserStore
from fax_engine.reference_ids import generate_reference_id

logger = get_logger("post_actions")

HELP_TOPICS = {
    "A": "email",
    "B": "shopping",
    "C": "payment",
    "D": "ai",
    "E": "address_book",
}

ONBOARDING_TEMPLATE = "onboarding"
HELP_TEMPLATE = "help"
PAYMENT_INSTRUCTIONS_TEMPLATE = "payment_instructions"


def help_topics(selected_options: list[str]) -> list[str]:
    """Map selected letters to help topics, dropping letters with no topic."""
    topics = []
    for option in selected_options:
        topic = HELP_TOPICS.get(option.upper())
        if topic is not None and topic not in topics:
            topics.append(topic)
    return topics


def wants_payment_instructions(interpretation: InterpretationResult) -> bool:
    if interpretation.intent == Intent.PAYMENT_REGISTRATION:
        return True
    params = interpretation.parameters
    return (
        isinstance(params, ReplyParameters)
        and params.freeform_text is not None
        and "payment method" in params.freeform_text.lower()
    )


def is_onboarding_reply(interpretation: InterpretationResult) -> bool:
    context = interpretation.context
    return (
        interpretation.intent == Intent.REPLY
        and context is not None
        and bool(context.context_data.get("is_onboarding_fax"))
        and isinstance(interpretation.parameters, ReplyParameters)
        and bool(interpretation.parameters.selected_options)
    )


class PostActionRunner:
    def __init__(
        self,
        user_store: UserStore,
        renderer: ResponseRenderer,
        transport: FaxTransport,
        audit: AuditRecorder | None = None,
    ) -> None:
        self._users = user_store
        self._renderer = renderer
        self._transport = transport
        self._audit = audit

    async def run(self, user: User, phone_number: str, interpretation: InterpretationResult) -> None:
        if not user.preferences.get("onboarding_fax_sent"):
            await self.send_onboarding(user, phone_number)

        if is_onboarding_reply(interpretation):
            await self.send_help(user, phone_number, interpretation.parameters.selected_options)

        if wants_payment_instructions(interpretation):
            await self.send_payment_instructions(user, phone_number)

    async def send_onboarding(self, user: User, phone_number: str) -> None:
        try:
            reference_id = await self._send(
                ONBOARDING_TEMPLATE, {"name": user.name}, phone_number
            )
            await self._users.update_preferences(
                user.id,
                {
                    "onboarding_fax_sent": True,
                    "onboarding_fax_sent_at": datetime.now(timezone.utc).isoformat(),
                    "onboarding_fax_reference_id": reference_id,
                },
            )
        except Exception as e:
            logger.warning("onboarding_fax_failed", user_id=user.id, exc_info=True)
            await self._record(user.id, "onboarding_fax_failed", {"error": str(e)})
            return
        logger.info("onboarding_fax_sent", user_id=user.id, reference_id=reference_id)
        await self._record(
            user.id,
            "onboarding_fax_sent",
            {"phone_number": phone_number, "reference_id": reference_id},
        )

    async def send_help(self, user: User, phone_number: str, selected_options: list[str]) -> None:
        topics = help_topics(selected_options)
        if not topics:
            logger.info("no_valid_help_topics", user_id=user.id, selected=selected_options)
            return
        try:
            for topic in topics:
                await self._send(HELP_TEMPLATE, {"topic": topic}, phone_number)
                logger.info("help_fax_sent", user_id=user.id, topic=topic)
        except Exception as e:
            logger.warning("help_fax_failed", user_id=user.id, exc_info=True)
            await self._record(
                user.id,
                "help_fax_failed",
                {"selected_options": selected_options, "error": str(e)},
            )
            return
        await self._record(
            user.id,
            "help_fax_sent",
            {
                "phone_number": phone_number,
                "selected_options": selected_options,
                "help_topics": topics,
                "topic_count": len(topics),
            },
        )

    async def send_payment_instructions(self, user: User, phone_number: str) -> None:
        try:
            await self._send(PAYMENT_INSTRUCTIONS_TEMPLATE, {}, phone_number)
        except Exception as e:
            logger.warning("payment_instructions_failed", user_id=user.id, exc_info=True)
            await self._record(user.id, "payment_instructions_failed", {"error": str(e)})
            return
        logger.info("payment_instructions_sent", user_id=user.id)
        await self._record(
            user.id,
            "payment_instructions_sent",
            {"phone_number": phone_number, "trigger": "user_request"},
        )

    async def _send(self, template_type: str, data: dict, phone_number: str) -> str:
        reference_id = generate_reference_id()
        pages = await self._renderer.generate(template_type, data, reference_id)
        await self._transport.send(phone_number, pages, reference_id)
        return reference_id

    async def _record(self, user_id: str, operation: str, details: dict) -> None:
        if self._audit is not None:
            await self._audit.write("user", user_id, operation, details)
