"""Payment-method registration detector."""

from __future__ import annotations

import re
from collections.abc import Sequence

from fax_engine.intent.base import find_circled_options, keyword_hits
from fax_engine.models.domain import RawIntentSignal, VisualAnnotation
from fax_engine.models.enums import Intent
from fax_engine.models.parameters import PaymentParameters

PAYMENT_KEYWORDS = [
    "payment", "credit card", "card", "pay", "billing",
    "register card", "add card", "payment method",
    "convenience store", "konbini", "barcode",
]

CARD_NUMBER_RE = re.compile(r"\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}")

# Circled A-E options almost always mean an order form reply that mentions
# payment in passing, not a registration request.
CIRCLED_OPTIONS_PENALTY = 0.3


def mask_card_number(number: str) -> str:
    return "****-****-****-" + number[-4:]


class PaymentDetector:
    intent = Intent.PAYMENT_REGISTRATION

    def detect(
        self,
        text: str,
        annotations: Sequence[VisualAnnotation],
        reference_id: str | None = None,
    ) -> RawIntentSignal:
        params = PaymentParameters()
        confidence = 0.2 * len(keyword_hits(text, PAYMENT_KEYWORDS))

        if "credit card" in text or "card" in text:
            params.payment_method = "credit_card"
            confidence += 0.3
        elif any(k in text for k in ("convenience store", "konbini", "barcode")):
            params.payment_method = "convenience_store"
            confidence += 0.3

        card = CARD_NUMBER_RE.search(text)
        if card:
            params.card_details = mask_card_number(card.group(0))
            confidence += 0.4

        if find_circled_options(text, annotations):
            confidence *= CIRCLED_OPTIONS_PENALTY

        return RawIntentSignal(self.intent, confidence, params)
