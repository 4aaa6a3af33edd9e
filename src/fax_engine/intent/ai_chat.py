"""Question-answering intent detector."""

from __future__ import annotations

import re
from collections.abc import Sequence

from fax_engine.intent.base import keyword_hits
from fax_engine.models.domain import RawIntentSignal, VisualAnnotation
from fax_engine.models.enums import Intent
from fax_engine.models.parameters import AIChatParameters

CHAT_KEYWORDS = [
    "ask", "question", "what is", "how to", "why", "when",
    "where", "who", "explain", "help me understand",
    "tell me about", "ai", "assistant",
]

QUESTION_PATTERNS = [
    re.compile(r"\?"),
    re.compile(r"^(?:what|how|why|when|where|who|can you|could you|please)", re.I),
    re.compile(r"(?:ask ai|ai question|help me)", re.I),
]

_QUESTION_PREFIX_RE = re.compile(r"^(?:ask ai|ai question|help me|please|can you|could you)\s*", re.I)


class AIChatDetector:
    intent = Intent.AI_CHAT

    def detect(
        self,
        text: str,
        annotations: Sequence[VisualAnnotation],
        reference_id: str | None = None,
    ) -> RawIntentSignal:
        params = AIChatParameters()
        confidence = 0.15 * len(keyword_hits(text, CHAT_KEYWORDS))
        confidence += 0.2 * sum(1 for p in QUESTION_PATTERNS if p.search(text))

        if confidence > 0.2:
            question = _QUESTION_PREFIX_RE.sub("", text).strip()
            if len(question) > 5:
                params.question = question
                confidence += 0.3

        return RawIntentSignal(self.intent, confidence, params)
