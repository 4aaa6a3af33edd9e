"""String enumerations shared across the engine."""

from __future__ import annotations

from enum import StrEnum


class Intent(StrEnum):
    EMAIL = "email"
    SHOPPING = "shopping"
    AI_CHAT = "ai_chat"
    PAYMENT_REGISTRATION = "payment_registration"
    REPLY = "reply"
    BLOCKLIST_MANAGEMENT = "blocklist_management"
    CONTACT_MANAGEMENT = "contact_management"
    UNKNOWN = "unknown"


class ShoppingSubIntent(StrEnum):
    PRODUCT_SEARCH = "product_search"
    PRODUCT_SELECTION = "product_selection"
    ORDER_STATUS = "order_status"


class AnnotationType(StrEnum):
    CIRCLE = "circle"
    CHECKMARK = "checkmark"
    UNDERLINE = "underline"
    ARROW = "arrow"
    CHECKBOX = "checkbox"


class RecoveryMethod(StrEnum):
    REFERENCE_ID = "reference_id"
    TEMPLATE_PATTERN = "template_pattern"
    CONTENT_SIMILARITY = "content_similarity"
    TEMPORAL_PROXIMITY = "temporal_proximity"
    NONE = "none"


class Stage(StrEnum):
    DOWNLOAD = "download"
    INTERPRETATION = "interpretation"
    AGENT_PROCESSING = "agent_processing"
    RESPONSE_GENERATION = "response_generation"
    FAX_SENDING = "fax_sending"


class ErrorType(StrEnum):
    USER_FACING = "user_facing"
    SYSTEM_ERROR = "system_error"
    TEMPORARY = "temporary"
    CONFIGURATION = "configuration"


class FailureCategory(StrEnum):
    VISION_API_QUOTA = "vision_api_quota"
    CARRIER_RATE_LIMIT = "carrier_rate_limit"
    STORAGE_FULL = "storage_full"
    PAYMENT_FAILED = "payment_failed"


class JobStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
