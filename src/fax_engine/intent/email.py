"""Email-sending intent detector."""

from __future__ import annotations

import re
from collections.abc import Sequence

from fax_engine.intent.base import Matcher, first_match, keyword_hits
from fax_engine.models.domain import RawIntentSignal, VisualAnnotation
from fax_engine.models.enums import Intent
from fax_engine.models.parameters import EmailParameters

EMAIL_KEYWORDS = [
    "send email", "email to", "tell", "message", "write to",
    "contact", "let know", "inform", "notify", "reply to",
]

_LEAD_IN = r"(?:email to|send to|tell|write to|contact)"

RECIPIENT_MATCHERS = [
    Matcher(
        "address_after_verb",
        re.compile(rf"{_LEAD_IN}\s+([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{{2,}})", re.I),
    ),
    Matcher(
        "name_after_verb",
        re.compile(rf"{_LEAD_IN}\s+([a-zA-Z\s]+?)(?:\s|$|,|\.|that|about)", re.I),
    ),
]

SUBJECT_MATCHERS = [
    Matcher("subject_label", re.compile(r"subject:?\s*([^\n\r]+)", re.I)),
    Matcher("about", re.compile(r"about\s+([^\n\r]+)", re.I)),
    Matcher("regarding", re.compile(r"regarding\s+([^\n\r]+)", re.I)),
]

BODY_MATCHERS = [
    Matcher(
        "tell_them",
        re.compile(r"(?:tell them|message|say|write)(?:\s+that)?\s*:?\s*([^\n\r]+)", re.I),
    ),
    Matcher("body_label", re.compile(r"(?:the message is|body|content):\s*([^\n\r]+)", re.I)),
]

_BODY_LEAD_INS = [
    re.compile(r"^(?:send email to|email to|tell|write to|contact)\s*", re.I),
    re.compile(r"^(?:that|about|regarding)\s*", re.I),
]


class EmailDetector:
    intent = Intent.EMAIL

    def detect(
        self,
        text: str,
        annotations: Sequence[VisualAnnotation],
        reference_id: str | None = None,
    ) -> RawIntentSignal:
        params = EmailParameters()
        confidence = 0.15 * len(keyword_hits(text, EMAIL_KEYWORDS))

        recipient = first_match(RECIPIENT_MATCHERS, text)
        if recipient:
            _, value = recipient
            if "@" in value:
                params.recipient_email = value
                confidence += 0.3
            else:
                params.recipient_name = value
                confidence += 0.25

        subject = first_match(SUBJECT_MATCHERS, text)
        if subject:
            params.subject = subject[1]
            confidence += 0.2

        body = first_match(BODY_MATCHERS, text)
        if body:
            params.body = body[1]
            confidence += 0.2

        if not params.body and (params.recipient_email or params.recipient_name):
            implicit = implicit_body(text, params)
            if implicit:
                params.body = implicit
                confidence += 0.15

        return RawIntentSignal(self.intent, confidence, params)


def implicit_body(text: str, params: EmailParameters) -> str | None:
    """Whatever is left once the recipient and lead-in phrases are removed."""
    body = text
    for recipient in (params.recipient_email, params.recipient_name):
        if recipient:
            body = body.replace(recipient, "", 1)
    body = body.strip()
    for lead_in in _BODY_LEAD_INS:
        body = lead_in.sub("", body).strip()

    # Leftovers of two words or fewer are treated as noise, even when long.
    if len(body) > 10 and len(body.split()) > 2:
        return body
    return None
