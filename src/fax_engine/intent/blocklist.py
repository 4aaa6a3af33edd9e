"""Email blocklist management detector."""

from __future__ import annotations

import re
from collections.abc import Sequence

from fax_engine.intent.base import EMAIL_ADDRESS_RE, Matcher, first_match, keyword_hits
from fax_engine.models.domain import RawIntentSignal, VisualAnnotation
from fax_engine.models.enums import Intent
from fax_engine.models.parameters import BlocklistParameters

BLOCKLIST_KEYWORDS = [
    "block", "unblock", "blocklist", "block list", "spam",
    "stop emails from", "stop receiving", "ブロック",
]

# unblock is checked first because "block" is a substring of it
ACTION_MATCHERS = [
    Matcher(
        "unblock",
        re.compile(r"\b(?:unblock|allow emails from|remove from (?:my )?block ?list)\b", re.I),
        lambda m: "unblock",
    ),
    Matcher(
        "block",
        re.compile(r"\b(?:block|stop emails from|stop receiving|add to (?:my )?block ?list)\b|ブロック", re.I),
        lambda m: "block",
    ),
]

TARGET_NAME_MATCHERS = [
    Matcher(
        "name_after_verb",
        re.compile(
            r"\b(?:unblock|block|emails from|receiving emails from|receiving from)\s+"
            r"([a-z][a-z .'-]*?)\s*(?:$|[,.\n]|\bplease\b)",
            re.I | re.M,
        ),
    ),
]

_NOT_A_NAME = {"emails", "email", "spam", "list", "from", "all", "them"}


def _target_name(text: str) -> str | None:
    match = first_match(TARGET_NAME_MATCHERS, text)
    if not match:
        return None
    name = match[1]
    if name in _NOT_A_NAME:
        return None
    return name


class BlocklistDetector:
    intent = Intent.BLOCKLIST_MANAGEMENT

    def detect(
        self,
        text: str,
        annotations: Sequence[VisualAnnotation],
        reference_id: str | None = None,
    ) -> RawIntentSignal:
        params = BlocklistParameters()
        confidence = 0.2 * len(keyword_hits(text, BLOCKLIST_KEYWORDS))

        action = first_match(ACTION_MATCHERS, text)
        if action:
            params.blocklist_action = action[1]
            confidence += 0.3

        if params.blocklist_action:
            address = EMAIL_ADDRESS_RE.search(text)
            if address:
                params.target_email = address.group(0)
                confidence += 0.3
            else:
                name = _target_name(text)
                if name:
                    params.target_name = name
                    confidence += 0.2

        return RawIntentSignal(self.intent, confidence, params)
