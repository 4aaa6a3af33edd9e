"""Pydantic models for payloads that cross the process boundary."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class FaxJobData(BaseModel):
    fax_id: str
    from_number: str
    to_number: str
    media_url: str
    page_count: int | None = None
    received_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AnnotationSpec(BaseModel):
    type: str
    associated_text: str | None = None
    confidence: float = 1.0
    bounding_box: list[float] = Field(default_factory=lambda: [0.0, 0.0, 0.0, 0.0])


class IntentEvalCase(BaseModel):
    id: str
    text: str
    annotations: list[AnnotationSpec] = Field(default_factory=list)
    expected_intent: str
    expected_sub_intent: str | None = None
    category: str = "general"
