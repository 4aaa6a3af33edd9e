"""Reply-to-a-previous-fax detector."""

from __future__ import annotations

import re
from collections.abc import Sequence

from fax_engine.models.domain import RawIntentSignal, VisualAnnotation
from fax_engine.models.enums import AnnotationType, Intent
from fax_engine.models.parameters import ReplyParameters

_SINGLE_LETTER_RE = re.compile(r"^[a-z]$", re.I)
_REF_LINE_RE = re.compile(r"ref:", re.I)

REPLY_FLOOR = 0.3
REPLY_MARKS = {AnnotationType.CIRCLE, AnnotationType.CHECKMARK}


def selected_letters(annotations: Sequence[VisualAnnotation]) -> list[str]:
    """Single letters circled or checked with enough detection confidence.

    Product option lines such as ``D. Dove soap`` are left to the shopping
    detector.
    """
    letters: list[str] = []
    for ann in annotations:
        if ann.type not in REPLY_MARKS:
            continue
        if ann.confidence <= 0.5 or not ann.associated_text:
            continue
        raw = ann.associated_text.strip()
        if not _SINGLE_LETTER_RE.match(raw):
            continue
        letter = raw.upper()
        if letter not in letters:
            letters.append(letter)
    return letters


def meaningful_lines(text: str) -> list[str]:
    lines = [line.strip() for line in text.splitlines()]
    return [
        line
        for line in lines
        if len(line) > 3 and not _SINGLE_LETTER_RE.match(line) and not _REF_LINE_RE.search(line)
    ]


class ReplyDetector:
    intent = Intent.REPLY

    def detect(
        self,
        text: str,
        annotations: Sequence[VisualAnnotation],
        reference_id: str | None = None,
    ) -> RawIntentSignal:
        params = ReplyParameters()
        confidence = 0.0

        letters = selected_letters(annotations)
        if letters:
            params.selected_options = letters
            confidence += 0.6

        if reference_id:
            params.reference_id = reference_id
            confidence += 0.4

        lines = meaningful_lines(text)
        if lines:
            params.freeform_text = " ".join(lines)
            confidence += 0.2

        if params.selected_options or params.freeform_text:
            confidence = max(confidence, REPLY_FLOOR)

        return RawIntentSignal(self.intent, confidence, params)
