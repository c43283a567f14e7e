"""
Business services. Each takes a request-scoped session; the ones that write also take an optional event publisher.
"""

from .ai_review import AIReviewService
from .appeal_service import AppealService
from .moderation_actions import ModerationActionsService
from .moderation_queue import ModerationQueueService

__all__ = [
    "AIReviewService",
    "AppealService",
    "ModerationActionsService",
    "ModerationQueueService",
]
