"""Per-intent parameter sets.

Each intent owns one dataclass with every field optional, and
``IntentParameters`` is the union of them. Code that needs a field checks
the concrete type first, e.g. ``isinstance(params, ReplyParameters)``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from fax_engine.models.enums import Intent, ShoppingSubIntent


@dataclass
class EmailParameters:
    recipient_email: str | None = None
    recipient_name: str | None = None
    subject: str | None = None
    body: str | None = None


@dataclass
class PriceRange:
    min: int | None = None
    max: int | None = None


@dataclass
class ShoppingParameters:
    sub_intent: ShoppingSubIntent | None = None
    product_query: str | None = None
    product_queries: list[str] = field(default_factory=list)
    selected_product_ids: list[str] = field(default_factory=list)
    selection_confidence: float | None = None
    quantity: int | None = None
    delivery_preferences: str | None = None
    price_range: PriceRange | None = None
    reference_id: str | None = None
    is_reply_to_form: bool | None = None


@dataclass
class AIChatParameters:
    question: str | None = None
    conversation_id: str | None = None


@dataclass
class PaymentParameters:
    payment_method: str | None = None  # "credit_card" | "convenience_store"
    card_details: str | None = None  # masked


@dataclass
class ReplyParameters:
    selected_options: list[str] = field(default_factory=list)
    freeform_text: str | None = None
    reference_id: str | None = None


@dataclass
class BlocklistParameters:
    blocklist_action: str | None = None  # "block" | "unblock"
    target_email: str | None = None
    target_name: str | None = None


@dataclass
class ContactParameters:
    contact_action: str | None = None  # "add" | "update" | "delete" | "list"
    current_name: str | None = None
    new_name: str | None = None
    email: str | None = None
    note: str | None = None


IntentParameters = (
    EmailParameters
    | ShoppingParameters
    | AIChatParameters
    | PaymentParameters
    | ReplyParameters
    | BlocklistParameters
    | ContactParameters
)

_PARAMETER_TYPES: dict[Intent, type] = {
    Intent.EMAIL: EmailParameters,
    Intent.SHOPPING: ShoppingParameters,
    Intent.AI_CHAT: AIChatParameters,
    Intent.PAYMENT_REGISTRATION: PaymentParameters,
    Intent.REPLY: ReplyParameters,
    Intent.BLOCKLIST_MANAGEMENT: BlocklistParameters,
    Intent.CONTACT_MANAGEMENT: ContactParameters,
}


def parameters_for(intent: Intent) -> IntentParameters:
    """Empty parameter set for an intent. Unknown intents get ReplyParameters."""
    return _PARAMETER_TYPES.get(intent, ReplyParameters)()


def parameters_to_dict(params: IntentParameters) -> dict[str, Any]:
    """Serialize a parameter set, dropping unset and empty fields."""
    return {k: v for k, v in asdict(params).items() if v not in (None, [], {})}
