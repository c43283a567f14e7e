"""
Enumerations persisted by the moderation models.

Values match the upper-case labels stored in the database. The wire format
uses lower-case labels; conversion lives in ``schemas.mappers``.
"""

import enum


class TargetType(str, enum.Enum):
    """Kind of entity a moderation action applies to."""
    RESPONSE = "RESPONSE"
    USER = "USER"
    TOPIC = "TOPIC"


class ActionType(str, enum.Enum):
    """Consequence applied by a moderation action, mildest first."""
    EDUCATE = "EDUCATE"
    WARN = "WARN"
    HIDE = "HIDE"
    REMOVE = "REMOVE"
    SUSPEND = "SUSPEND"
    BAN = "BAN"


class Severity(str, enum.Enum):
    """
    NON_PUNITIVE: educational, active immediately, never approved
    CONSEQUENTIAL: impactful, may require moderator approval
    """
    NON_PUNITIVE = "NON_PUNITIVE"
    CONSEQUENTIAL = "CONSEQUENTIAL"


class ModerationStatus(str, enum.Enum):
    """Lifecycle status of a moderation action."""
    PENDING = "PENDING"      # Awaiting moderator approval
    ACTIVE = "ACTIVE"        # In effect
    APPEALED = "APPEALED"    # Contested by its target
    REVERSED = "REVERSED"    # Rejected or overturned on appeal (terminal)


class AppealStatus(str, enum.Enum):
    """Lifecycle status of an appeal."""
    PENDING = "PENDING"            # Submitted, waiting in the shared queue
    UNDER_REVIEW = "UNDER_REVIEW"  # Assigned to a moderator
    UPHELD = "UPHELD"              # Action reversed (terminal)
    DENIED = "DENIED"              # Action stands (terminal)


SEVERITY_BY_ACTION_TYPE = {
    ActionType.EDUCATE: Severity.NON_PUNITIVE,
    ActionType.WARN: Severity.NON_PUNITIVE,
    ActionType.HIDE: Severity.CONSEQUENTIAL,
    ActionType.REMOVE: Severity.CONSEQUENTIAL,
    ActionType.SUSPEND: Severity.CONSEQUENTIAL,
    ActionType.BAN: Severity.CONSEQUENTIAL,
}

LIVE_APPEAL_STATUSES = (AppealStatus.PENDING, AppealStatus.UNDER_REVIEW)


def severity_for(action_type: ActionType) -> Severity:
    """Derive the severity of an action type."""
    return SEVERITY_BY_ACTION_TYPE[action_type]
