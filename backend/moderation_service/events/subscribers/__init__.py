"""
Event subscribers for the moderation service.
"""

from .audit_subscriber import AuditSubscriber, register_audit_subscriber

__all__ = ["AuditSubscriber", "register_audit_subscriber"]
