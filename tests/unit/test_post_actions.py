"""Tests for follow-up faxes after a successful run."""

from conftest import FakeRenderer, FakeTransport, FakeUserStore, make_context, make_interpretation
from fax_engine.models.domain import User
from fax_engine.models.enums import Intent
from fax_engine.models.parameters import PaymentParameters, ReplyParameters
from fax_engine.pipeline.post_actions import (
    PostActionRunner,
    help_topics,
    is_onboarding_reply,
    wants_payment_instructions,
)

PHONE = "+81-3-5555-0101"


def make_runner(audit=None):
    users = FakeUserStore()
    renderer = FakeRenderer()
    transport = FakeTransport()
    return PostActionRunner(users, renderer, transport, audit), users, renderer, transport


def onboarded_user():
    return User(id="user-1", phone_number=PHONE, preferences={"onboarding_fax_sent": True})


def test_help_topics_drop_unknown_letters():
    assert help_topics(["a", "E", "Z", "A"]) == ["email", "address_book"]


def test_payment_instructions_triggers():
    assert wants_payment_instructions(
        make_interpretation(intent=Intent.PAYMENT_REGISTRATION, parameters=PaymentParameters())
    )
    assert wants_payment_instructions(
        make_interpretation(
            intent=Intent.REPLY,
            parameters=ReplyParameters(freeform_text="Please explain each Payment Method"),
        )
    )
    assert not wants_payment_instructions(make_interpretation())


def test_onboarding_reply_needs_flagged_context():
    interpretation = make_interpretation(
        intent=Intent.REPLY, parameters=ReplyParameters(selected_options=["B"])
    )
    assert not is_onboarding_reply(interpretation)
    interpretation.context = make_context("ctx-1", context_data={"is_onboarding_fax": True})
    assert is_onboarding_reply(interpretation)


async def test_new_user_gets_onboarding_once(audit, audit_sink):
    runner, users, renderer, transport = make_runner(audit)
    user, _ = await users.find_or_create(PHONE)

    await runner.run(user, PHONE, make_interpretation())
    await runner.run(user, PHONE, make_interpretation())

    assert renderer.templates() == ["onboarding"]
    prefs = users.preference_updates[0][1]
    assert prefs["onboarding_fax_sent"] is True
    assert prefs["onboarding_fax_reference_id"] == transport.sent[0][2]
    assert "onboarding_fax_sent_at" in prefs
    assert audit_sink.operations() == ["onboarding_fax_sent"]


async def test_failed_onboarding_is_not_marked_sent(audit, audit_sink):
    runner, users, renderer, _ = make_runner(audit)
    renderer.fail_templates.add("onboarding")
    user, _ = await users.find_or_create(PHONE)

    await runner.run(user, PHONE, make_interpretation())

    assert users.preference_updates == []
    assert audit_sink.operations() == ["onboarding_fax_failed"]


async def test_help_fax_per_topic(audit, audit_sink):
    runner, _, renderer, _ = make_runner(audit)
    interpretation = make_interpretation(
        intent=Intent.REPLY,
        parameters=ReplyParameters(selected_options=["C", "D"]),
        context=make_context("ctx-1", context_data={"is_onboarding_fax": True}),
    )

    await runner.run(onboarded_user(), PHONE, interpretation)

    assert [c[1]["topic"] for c in renderer.calls] == ["payment", "ai"]
    event = audit_sink.events[0]
    assert event["operation"] == "help_fax_sent"
    assert event["details"]["topic_count"] == 2


async def test_no_valid_topics_sends_nothing():
    runner, _, renderer, _ = make_runner()
    await runner.send_help(onboarded_user(), PHONE, ["X"])
    assert renderer.calls == []


async def test_payment_instructions_sent(audit, audit_sink):
    runner, _, renderer, transport = make_runner(audit)
    interpretation = make_interpretation(
        intent=Intent.PAYMENT_REGISTRATION, parameters=PaymentParameters()
    )

    await runner.run(onboarded_user(), PHONE, interpretation)

    assert renderer.templates() == ["payment_instructions"]
    assert transport.sent[0][0] == PHONE
    assert audit_sink.events[0]["details"]["trigger"] == "user_request"


async def test_payment_instructions_failure_is_audited(audit, audit_sink):
    runner, _, renderer, _ = make_runner(audit)
    renderer.fail_templates.add("payment_instructions")

    await runner.send_payment_instructions(onboarded_user(), PHONE)

    assert audit_sink.operations() == ["payment_instructions_failed"]
