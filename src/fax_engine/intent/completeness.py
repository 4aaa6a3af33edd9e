"""How complete the extracted parameter set is for its intent.

The weights are fixed so that audit records stay comparable across
releases.
"""

from __future__ import annotations

from fax_engine.models.domain import clamp
from fax_engine.models.enums import Intent, ShoppingSubIntent
from fax_engine.models.parameters import (
    AIChatParameters,
    BlocklistParameters,
    ContactParameters,
    EmailParameters,
    IntentParameters,
    PaymentParameters,
    ReplyParameters,
    ShoppingParameters,
)


def _email(p: EmailParameters) -> float:
    score = 0.0
    if p.recipient_email or p.recipient_name:
        score += 0.4
    if p.subject:
        score += 0.3
    if p.body:
        score += 0.3
    return score


def _shopping(p: ShoppingParameters) -> float:
    if p.sub_intent == ShoppingSubIntent.PRODUCT_SELECTION:
        return 1.0 if p.selected_product_ids else 0.0
    if p.sub_intent == ShoppingSubIntent.ORDER_STATUS:
        return 1.0 if p.reference_id else 0.5

    score = 0.0
    if p.product_query or p.product_queries:
        score += 0.6
        if len(p.product_queries) > 1:
            score += 0.1
    if p.quantity:
        score += 0.2
    if p.delivery_preferences or p.price_range:
        score += 0.2
    return score


def _contact(p: ContactParameters) -> float:
    if not p.contact_action:
        return 0.0
    score = 0.4
    if p.contact_action == "list":
        score += 0.6
    elif p.contact_action == "add":
        if p.new_name:
            score += 0.3
        if p.email:
            score += 0.3
    elif p.contact_action == "update":
        if p.current_name:
            score += 0.3
        if p.new_name or p.email:
            score += 0.3
    elif p.contact_action == "delete":
        if p.current_name or p.email:
            score += 0.6
    return score


def _blocklist(p: BlocklistParameters) -> float:
    score = 0.0
    if p.blocklist_action:
        score += 0.4
    if p.target_email or p.target_name:
        score += 0.6
    return score


def _reply(p: ReplyParameters) -> float:
    score = 0.0
    if p.selected_options:
        score += 0.7
    if p.freeform_text:
        score += 0.3
    return score


def assess_parameter_completeness(intent: Intent, params: IntentParameters) -> float:
    if intent == Intent.EMAIL and isinstance(params, EmailParameters):
        score = _email(params)
    elif intent == Intent.SHOPPING and isinstance(params, ShoppingParameters):
        score = _shopping(params)
    elif intent == Intent.AI_CHAT and isinstance(params, AIChatParameters):
        score = 1.0 if params.question else 0.2
    elif intent == Intent.PAYMENT_REGISTRATION and isinstance(params, PaymentParameters):
        score = 0.8 if params.payment_method else 0.3
    elif intent == Intent.REPLY and isinstance(params, ReplyParameters):
        score = _reply(params)
    elif intent == Intent.BLOCKLIST_MANAGEMENT and isinstance(params, BlocklistParameters):
        score = _blocklist(params)
    elif intent == Intent.CONTACT_MANAGEMENT and isinstance(params, ContactParameters):
        score = _contact(params)
    else:
        score = 0.1
    return clamp(score)
