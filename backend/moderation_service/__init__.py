"""
ReasonBridge moderation service: moderation actions, appeals and AI review.
"""

__version__ = "1.0.0"
