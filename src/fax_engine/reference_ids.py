"""Reference ids printed on outbound faxes (format ``FX-YYYY-NNNNNN``)."""

from __future__ import annotations

import re
import secrets
from datetime import datetime, timezone

REFERENCE_ID_PATTERNS = [
    re.compile(r"(?:ref|reference|ref#|ref:)\s*[:#]?\s*(FX-\d{4}-\d{6})", re.I),
    re.compile(r"(?:order|ticket|case)\s*#?\s*(FX-\d{4}-\d{6})", re.I),
    re.compile(r"\b(FX-\d{4}-\d{6})\b", re.I),
]


def generate_reference_id(now: datetime | None = None) -> str:
    year = (now or datetime.now(timezone.utc)).year
    return f"FX-{year}-{secrets.randbelow(1_000_000):06d}"


def extract_reference_id(text: str) -> str | None:
    for pattern in REFERENCE_ID_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1).upper()
    return None
