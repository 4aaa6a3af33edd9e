"""Shared building blocks for intent detectors.

Field extraction is expressed as ordered lists of ``Matcher`` objects that
are evaluated first-match-wins, so the precedence between patterns is
visible in one place and each pattern can be tested on its own.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from fax_engine.models.domain import RawIntentSignal, VisualAnnotation
from fax_engine.models.enums import AnnotationType, Intent

EMAIL_ADDRESS_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

OPTION_LETTERS = "ABCDE"
SELECTION_MARKS = {AnnotationType.CIRCLE, AnnotationType.CHECKMARK, AnnotationType.CHECKBOX}

_ANNOTATION_LETTER_RE = re.compile(r"^\s*\(?([A-Ea-e])(?:[.):]|\s*$)")
_CIRCLED_GLYPHS = {
    "Ⓐ": "A", "Ⓑ": "B", "Ⓒ": "C", "Ⓓ": "D", "Ⓔ": "E",
    "ⓐ": "A", "ⓑ": "B", "ⓒ": "C", "ⓓ": "D", "ⓔ": "E",
}
_CIRCLED_GLYPH_RE = re.compile("[" + "".join(_CIRCLED_GLYPHS) + "]")


def _group_one(match: re.Match) -> str:
    return match.group(1).strip()


@dataclass(frozen=True)
class Matcher:
    name: str
    pattern: re.Pattern
    extract: Callable[[re.Match], Any] = _group_one


def first_match(matchers: Sequence[Matcher], text: str) -> tuple[Matcher, Any] | None:
    """Run matchers in order; return the first one that matches and its value."""
    for matcher in matchers:
        match = matcher.pattern.search(text)
        if match:
            value = matcher.extract(match)
            if value:
                return matcher, value
    return None


def _is_ascii(keyword: str) -> bool:
    return all(ord(ch) < 128 for ch in keyword)


def keyword_hits(text: str, keywords: Iterable[str]) -> list[str]:
    """Keywords present in text. ASCII keywords must match on word boundaries."""
    hits = []
    for keyword in keywords:
        if _is_ascii(keyword):
            if re.search(rf"\b{re.escape(keyword)}\b", text):
                hits.append(keyword)
        elif keyword in text:
            hits.append(keyword)
    return hits


def annotation_letter(associated_text: str | None) -> str | None:
    if not associated_text:
        return None
    match = _ANNOTATION_LETTER_RE.match(associated_text)
    return match.group(1).upper() if match else None


def find_circled_options(text: str, annotations: Sequence[VisualAnnotation]) -> list[str]:
    """Option letters A-E that were circled or checked.

    Union of annotation letters and circled glyphs in the recognized text,
    de-duplicated in first-seen order.
    """
    found: list[str] = []
    for ann in annotations:
        if ann.type in SELECTION_MARKS:
            letter = annotation_letter(ann.associated_text)
            if letter and letter not in found:
                found.append(letter)
    for glyph in _CIRCLED_GLYPH_RE.findall(text):
        letter = _CIRCLED_GLYPHS[glyph]
        if letter not in found:
            found.append(letter)
    return found


class IntentDetector(Protocol):
    intent: Intent

    def detect(
        self,
        text: str,
        annotations: Sequence[VisualAnnotation],
        reference_id: str | None = None,
    ) -> RawIntentSignal: ...
