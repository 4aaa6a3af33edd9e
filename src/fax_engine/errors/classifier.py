"""Error classification and retry policy.

Everything here is pure: the same message and stage always give the same
classification, and the retry decision depends only on type and count.
"""

from __future__ import annotations

from fax_engine.models.enums import ErrorType, Stage

MAX_RETRIES = 3
SYSTEM_ERROR_MAX_RETRIES = 2
BASE_RETRY_DELAY_MS = 2000
MAX_RETRY_DELAY_MS = 30000

CONFIGURATION_MARKERS = ["invalid api key", "unauthorized", "forbidden", "configuration"]
USER_FACING_MARKERS = ["low confidence", "unclear", "cannot determine intent", "poor image quality"]
TEMPORARY_MARKERS = [
    "timeout", "rate limit", "service unavailable", "connection", "network", "502", "503", "504",
]

STAGE_MARKERS = [
    (Stage.DOWNLOAD, ["download", "media", "fetch"]),
    (Stage.INTERPRETATION, ["interpretation", "vision"]),
    (Stage.AGENT_PROCESSING, ["agent", "mcp", "tool"]),
    (Stage.RESPONSE_GENERATION, ["response", "generation", "tiff"]),
    (Stage.FAX_SENDING, ["send", "fax"]),
]


def _contains_any(message: str, markers: list[str]) -> bool:
    return any(marker in message for marker in markers)


def classify_error(error: BaseException | str, stage: Stage) -> ErrorType:
    message = str(error).lower()
    if _contains_any(message, CONFIGURATION_MARKERS):
        return ErrorType.CONFIGURATION
    if stage == Stage.INTERPRETATION and _contains_any(message, USER_FACING_MARKERS):
        return ErrorType.USER_FACING
    if _contains_any(message, TEMPORARY_MARKERS):
        return ErrorType.TEMPORARY
    return ErrorType.SYSTEM_ERROR


def should_retry(error_type: ErrorType, retry_count: int) -> bool:
    if retry_count >= MAX_RETRIES:
        return False
    if error_type == ErrorType.TEMPORARY:
        return True
    if error_type == ErrorType.SYSTEM_ERROR:
        return retry_count < SYSTEM_ERROR_MAX_RETRIES
    return False


def retry_delay_ms(retry_count: int) -> int:
    return min(BASE_RETRY_DELAY_MS * 2**retry_count, MAX_RETRY_DELAY_MS)


def infer_stage(message: str) -> Stage:
    """Guess the failing stage from an error message. Defaults to interpretation."""
    lowered = message.lower()
    for stage, markers in STAGE_MARKERS:
        if _contains_any(lowered, markers):
            return stage
    return Stage.INTERPRETATION
