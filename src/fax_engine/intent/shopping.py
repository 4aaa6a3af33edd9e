"""Shopping intent detector.

Three sub-intents are checked in a fixed order, and the first two
short-circuit:

1. ``order_status``: status keywords or an ``order FX-...`` reference.
2. ``product_selection``: option letters circled on a previous order form.
3. ``product_search``: free-text product queries plus optional quantity,
   price range and delivery add-ons.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from fax_engine.intent.base import Matcher, find_circled_options, first_match, keyword_hits
from fax_engine.models.domain import RawIntentSignal, VisualAnnotation
from fax_engine.models.enums import Intent, ShoppingSubIntent
from fax_engine.models.parameters import PriceRange, ShoppingParameters

MAX_PRODUCT_QUERIES = 5

SHOPPING_KEYWORDS = [
    "buy", "purchase", "order", "shop", "need", "want",
    "get me", "find", "looking for", "search for",
    "買", "注文", "欲しい",
]

ORDER_STATUS_KEYWORDS = [
    "order status", "where is my order", "track my order", "tracking",
    "delivery status", "has my order shipped", "注文状況",
]
_ORDER_REFERENCE_RE = re.compile(r"\border\s*(?:#|no\.?|number)?\s*:?\s*(fx-\d{4}-\d{6})", re.I)

_TRIGGER = r"(?:buy|purchase|order|get me|find|looking for|search for|need|want)"

PRODUCT_PHRASE_MATCHERS = [
    Matcher(
        "trigger_verb",
        re.compile(rf"\b{_TRIGGER}\s+(?:to (?:buy|get|order)\s+)?([^\n.!?]+)", re.I),
    ),
    Matcher(
        "i_would_like",
        re.compile(r"\b(?:i'd like|i would like)\s+(?:to (?:buy|get|order)\s+)?([^\n.!?]+)", re.I),
    ),
    # A bare list such as "shampoo and vegetable crackers" on a single line.
    Matcher(
        "bare_list",
        re.compile(r"^\s*([a-z0-9][a-z0-9 '&\-]*(?:(?:,|、|\band\b|と|や)\s*[a-z0-9 '&\-]+)+)\s*$", re.I),
    ),
]

_PHRASE_CUT_RE = re.compile(
    r"\s+(?:from|at|for|under|below|over|above|less than|more than|between|by|"
    r"delivered|deliver|ship|shipped|please|asap|urgently|quickly)\b.*$",
    re.I,
)
_CONJUNCTION_RE = re.compile(r"\s*(?:,|、|\band\b|と|や)\s*", re.I)
_LEADING_ARTICLE_RE = re.compile(r"^(?:some|a|an|the)\s+", re.I)
_LEADING_QUANTITY_RE = re.compile(
    r"^\d+\s*(?:x\s*|(?:pieces?|packs?|bottles?|boxes?|bags?)\s+of\s+)?", re.I
)

QUANTITY_MATCHERS = [
    Matcher(
        "count_with_unit",
        re.compile(r"(\d+)\s*(?:x\b|pieces?|items?|units?|packs?|bottles?|boxes?|bags?|個|本|袋)", re.I),
        lambda m: int(m.group(1)),
    ),
    Matcher(
        "quantity_label",
        re.compile(r"(?:quantity|qty|amount)\s*:?\s*(\d+)", re.I),
        lambda m: int(m.group(1)),
    ),
    Matcher("times", re.compile(r"\bx\s*(\d+)\b", re.I), lambda m: int(m.group(1))),
]


def _yen(value: str) -> int:
    return int(value.replace(",", ""))


PRICE_RANGE_MATCHERS = [
    Matcher(
        "between",
        re.compile(
            r"between\s*[¥$]?\s*(\d[\d,]*)\s*(?:yen|円)?\s*(?:and|-|~|to)\s*[¥$]?\s*(\d[\d,]*)",
            re.I,
        ),
        lambda m: PriceRange(min=_yen(m.group(1)), max=_yen(m.group(2))),
    ),
    Matcher(
        "span",
        re.compile(r"[¥$]?(\d[\d,]*)\s*(?:-|~|〜)\s*[¥$]?(\d[\d,]*)\s*(?:yen|円)", re.I),
        lambda m: PriceRange(min=_yen(m.group(1)), max=_yen(m.group(2))),
    ),
    Matcher(
        "ceiling",
        re.compile(r"(?:under|below|less than|cheaper than|up to)\s*[¥$]?\s*(\d[\d,]*)", re.I),
        lambda m: PriceRange(max=_yen(m.group(1))),
    ),
    Matcher(
        "ceiling_ja",
        re.compile(r"(\d[\d,]*)\s*円以下"),
        lambda m: PriceRange(max=_yen(m.group(1))),
    ),
    Matcher(
        "floor",
        re.compile(r"(?:over|above|more than|at least)\s*[¥$]?\s*(\d[\d,]*)", re.I),
        lambda m: PriceRange(min=_yen(m.group(1))),
    ),
]

DELIVERY_MATCHERS = [
    Matcher("deliver_to", re.compile(r"(?:deliver to|ship to|send to)\s+([^\n\r]+)", re.I)),
    Matcher("delivery_label", re.compile(r"(?:delivery|shipping):\s*([^\n\r]+)", re.I)),
    Matcher("urgent", re.compile(r"\b(?:urgent|rush|fast|quick|asap)\b", re.I), lambda m: "urgent"),
]


def split_product_queries(phrase: str) -> list[str]:
    """Split a product phrase on conjunctions into at most five clean queries."""
    phrase = _PHRASE_CUT_RE.sub("", phrase.strip())
    queries: list[str] = []
    for part in _CONJUNCTION_RE.split(phrase):
        item = _LEADING_ARTICLE_RE.sub("", part.strip())
        item = _LEADING_QUANTITY_RE.sub("", item).strip(" -'")
        item = _LEADING_ARTICLE_RE.sub("", item)
        if item and item not in queries:
            queries.append(item)
    return queries[:MAX_PRODUCT_QUERIES]


class ShoppingDetector:
    intent = Intent.SHOPPING

    def detect(
        self,
        text: str,
        annotations: Sequence[VisualAnnotation],
        reference_id: str | None = None,
    ) -> RawIntentSignal:
        status = self._detect_order_status(text, reference_id)
        if status is not None:
            return status

        selected = find_circled_options(text, annotations)
        if selected:
            is_reply_to_form = reference_id is not None or "order form" in text
            confidence = 0.95 if is_reply_to_form else 0.9
            params = ShoppingParameters(
                sub_intent=ShoppingSubIntent.PRODUCT_SELECTION,
                selected_product_ids=selected,
                selection_confidence=confidence,
                reference_id=reference_id,
                is_reply_to_form=True if is_reply_to_form else None,
            )
            return RawIntentSignal(self.intent, confidence, params)

        return self._detect_product_search(text)

    def _detect_order_status(self, text: str, reference_id: str | None) -> RawIntentSignal | None:
        order_ref = _ORDER_REFERENCE_RE.search(text)
        if not keyword_hits(text, ORDER_STATUS_KEYWORDS) and not order_ref:
            return None
        ref = order_ref.group(1).upper() if order_ref else reference_id
        params = ShoppingParameters(sub_intent=ShoppingSubIntent.ORDER_STATUS, reference_id=ref)
        confidence = 0.8 + (0.1 if ref else 0.0)
        return RawIntentSignal(self.intent, confidence, params)

    def _detect_product_search(self, text: str) -> RawIntentSignal:
        params = ShoppingParameters()
        confidence = 0.1 * len(keyword_hits(text, SHOPPING_KEYWORDS))

        phrase = first_match(PRODUCT_PHRASE_MATCHERS, text)
        if phrase:
            queries = split_product_queries(phrase[1])
            if queries:
                params.sub_intent = ShoppingSubIntent.PRODUCT_SEARCH
                params.product_queries = queries
                params.product_query = queries[0]
                confidence += 0.4 + 0.1 * (len(queries) - 1)

        quantity = first_match(QUANTITY_MATCHERS, text)
        if quantity:
            params.quantity = quantity[1]
            confidence += 0.1

        price = first_match(PRICE_RANGE_MATCHERS, text)
        if price:
            params.price_range = price[1]
            confidence += 0.1

        delivery = first_match(DELIVERY_MATCHERS, text)
        if delivery:
            params.delivery_preferences = delivery[1]
            confidence += 0.15

        return RawIntentSignal(self.intent, confidence, params)
