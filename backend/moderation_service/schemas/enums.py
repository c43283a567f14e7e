"""
Wire enumerations: the lower-case labels exposed by the REST API.
"""

from enum import Enum


class WireTargetType(str, Enum):
    RESPONSE = "response"
    USER = "user"
    TOPIC = "topic"


class WireActionType(str, Enum):
    EDUCATE = "educate"
    WARN = "warn"
    HIDE = "hide"
    REMOVE = "remove"
    SUSPEND = "suspend"
    BAN = "ban"


class WireSeverity(str, Enum):
    NON_PUNITIVE = "non_punitive"
    CONSEQUENTIAL = "consequential"


class WireModerationStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    APPEALED = "appealed"
    REVERSED = "reversed"


class WireAppealStatus(str, Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    UPHELD = "upheld"
    DENIED = "denied"


class AppealDecision(str, Enum):
    """Outcome chosen by the reviewer of an appeal."""
    UPHELD = "upheld"
    DENIED = "denied"
