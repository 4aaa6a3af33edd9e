"""Address book (contact management) detector.

Action matchers return a dict of the fields they could read from the
sentence, so one match yields both the action and its names.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from fax_engine.intent.base import EMAIL_ADDRESS_RE, Matcher, first_match, keyword_hits
from fax_engine.models.domain import RawIntentSignal, VisualAnnotation
from fax_engine.models.enums import Intent
from fax_engine.models.parameters import ContactParameters

CONTACT_KEYWORDS = [
    "address book", "contact list", "contacts", "add contact", "save contact",
    "delete contact", "remove contact", "update contact", "change contact", "連絡先",
]

_BOOK = r"(?:address book|contacts|contact list|連絡先)"
_BOOK_SUFFIX_RE = re.compile(rf"\s+(?:to|from|in|into|on)\s+(?:my\s+|the\s+)?{_BOOK}.*$", re.I)
_NAME_STOP_RE = re.compile(r"\s*(?:[(,:\n]|\bemail\b|\bwith\b|\bat\b|\bplease\b).*$", re.I)


def _clean_name(fragment: str) -> str | None:
    name = EMAIL_ADDRESS_RE.sub("", fragment)
    name = _BOOK_SUFFIX_RE.sub("", name)
    name = _NAME_STOP_RE.sub("", name)
    name = re.sub(r"^(?:a\s+)?(?:new\s+)?contact\s+", "", name.strip(), flags=re.I)
    name = name.strip(" .-'")
    if not name or re.fullmatch(rf"(?:my\s+)?{_BOOK}", name):
        return None
    return name


def _list(match: re.Match) -> dict:
    return {"contact_action": "list"}


def _delete(match: re.Match) -> dict:
    return {"contact_action": "delete", "current_name": _clean_name(match.group(1))}


def _update(match: re.Match) -> dict:
    fields = {"contact_action": "update", "current_name": _clean_name(match.group(1))}
    target = match.group(2).strip()
    if not EMAIL_ADDRESS_RE.search(target):
        fields["new_name"] = _clean_name(target)
    return fields


def _add(match: re.Match) -> dict:
    return {"contact_action": "add", "new_name": _clean_name(match.group(1))}


ACTION_MATCHERS = [
    Matcher(
        "list",
        re.compile(
            rf"\b(?:show|list|send|see|view|check|print)\s+(?:me\s+)?(?:all\s+)?(?:my\s+|the\s+)?{_BOOK}",
            re.I,
        ),
        _list,
    ),
    Matcher(
        "delete",
        re.compile(r"\b(?:delete|remove)\s+(?:contact\s+)?(.*)$", re.I | re.M),
        _delete,
    ),
    Matcher(
        "update",
        re.compile(r"\b(?:change|update)\s+(?:contact\s+)?(.+?)\s+to\s+(.+)$", re.I | re.M),
        _update,
    ),
    Matcher(
        "add",
        re.compile(r"\b(?:add|save)\s+(.*)$", re.I | re.M),
        _add,
    ),
]

NOTE_MATCHERS = [
    Matcher("note_label", re.compile(r"(?:note|relationship):\s*([^\n\r]+)", re.I)),
    Matcher("parenthesised", re.compile(r"\(([^)]+)\)")),
]


class ContactDetector:
    intent = Intent.CONTACT_MANAGEMENT

    def detect(
        self,
        text: str,
        annotations: Sequence[VisualAnnotation],
        reference_id: str | None = None,
    ) -> RawIntentSignal:
        params = ContactParameters()
        hits = keyword_hits(text, CONTACT_KEYWORDS)
        address = EMAIL_ADDRESS_RE.search(text)
        # Bare "add"/"remove" is too common in other requests to count alone.
        if not hits and not address:
            return RawIntentSignal(self.intent, 0.0, params)

        confidence = 0.2 * len(hits)

        action = first_match(ACTION_MATCHERS, text)
        if action:
            for name, value in action[1].items():
                setattr(params, name, value)
            confidence += 0.3

        if address:
            params.email = address.group(0)
        note = first_match(NOTE_MATCHERS, text)
        if note:
            params.note = note[1]

        extracted = [params.current_name, params.new_name, params.email, params.note]
        confidence += 0.1 * sum(1 for value in extracted if value)

        return RawIntentSignal(self.intent, confidence, params)
