"""Metric recording helpers."""

from __future__ import annotations

from fax_engine.observability.logger import get_logger

logger = get_logger("metrics")


def log_intent_metrics(
    intent: str,
    confidence: float,
    parameter_extraction: float,
    alternatives: list[str],
) -> None:
    logger.info(
        "intent_metrics",
        intent=intent,
        confidence=round(confidence, 4),
        parameter_extraction=round(parameter_extraction, 4),
        alternatives=alternatives,
    )


def log_stage_latency(job_id: str, stage: str, duration_ms: float, failed: bool) -> None:
    logger.info(
        "stage_latency",
        job_id=job_id,
        stage=stage,
        duration_ms=round(duration_ms, 2),
        failed=failed,
    )


def log_error_decision(
    job_id: str,
    stage: str,
    error_type: str,
    should_retry: bool,
    retry_count: int,
) -> None:
    logger.info(
        "error_decision",
        job_id=job_id,
        stage=stage,
        error_type=error_type,
        should_retry=should_retry,
        retry_count=retry_count,
    )
