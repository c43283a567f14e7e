# models/__init__.py

from .enums import (
    ActionType,
    AppealStatus,
    ModerationStatus,
    Severity,
    TargetType,
    LIVE_APPEAL_STATUSES,
    severity_for,
)
from .user import User
from .moderation_action import ModerationAction
from .appeal import Appeal

__all__ = [
    'User',
    'ModerationAction',
    'Appeal',
    'ActionType',
    'AppealStatus',
    'ModerationStatus',
    'Severity',
    'TargetType',
    'LIVE_APPEAL_STATUSES',
    'severity_for',
]
