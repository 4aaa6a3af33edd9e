"""Custom exception hierarchy for the fax engine."""

from __future__ import annotations

from fax_engine.models.enums import ErrorType, FailureCategory, Stage


class FaxEngineError(Exception):
    """Base exception for all fax engine errors."""


class ConfigurationError(FaxEngineError):
    """Error in system configuration."""


class DownloadError(FaxEngineError):
    """Error fetching the inbound fax image."""


class CategorizedFailure(FaxEngineError):
    """An external failure whose category is known to the caller.

    Routed through the named dispatch table of the error handler instead of
    the generic message-based classifier.
    """

    category: FailureCategory


class VisionQuotaExceeded(CategorizedFailure):
    category = FailureCategory.VISION_API_QUOTA


class CarrierRateLimited(CategorizedFailure):
    category = FailureCategory.CARRIER_RATE_LIMIT


class StorageFull(CategorizedFailure):
    category = FailureCategory.STORAGE_FULL


class PaymentFailed(CategorizedFailure):
    category = FailureCategory.PAYMENT_FAILED


class StageFailure(FaxEngineError):
    """A pipeline stage failed and will not be retried in-process."""

    def __init__(
        self,
        stage: Stage,
        cause: Exception,
        retry_count: int = 0,
        handled: bool = False,
        error_type: ErrorType | None = None,
    ) -> None:
        super().__init__(str(cause))
        self.stage = stage
        self.cause = cause
        self.retry_count = retry_count
        self.handled = handled
        self.error_type = error_type
