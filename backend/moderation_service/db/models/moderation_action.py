"""
Moderation action model.

A moderation action is a consequence (educate, warn, hide, remove, suspend,
ban) applied to a response, user or topic, either recommended by the AI
reviewer or initiated by a moderator.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Numeric, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..base import Base, CreatedAtMixin, UUIDMixin
from .enums import ActionType, ModerationStatus, Severity, TargetType

if TYPE_CHECKING:
    from .appeal import Appeal
    from .user import User


class ModerationAction(UUIDMixin, CreatedAtMixin, Base):
    """
    A moderation action and its lifecycle status.

    Appeals reference the action; deleting an action removes its appeals.
    """

    __table_args__ = (
        Index("ix_moderation_actions_target", "target_type", "target_id"),
    )

    target_type: Mapped[TargetType] = mapped_column(
        Enum(TargetType, name="moderation_target_type"), nullable=False
    )
    target_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    action_type: Mapped[ActionType] = mapped_column(
        Enum(ActionType, name="moderation_action_type"), nullable=False
    )
    severity: Mapped[Severity] = mapped_column(
        Enum(Severity, name="moderation_severity"), nullable=False, index=True
    )
    reasoning: Mapped[str] = mapped_column(Text, nullable=False)

    ai_recommended: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    ai_confidence: Mapped[Optional[Decimal]] = mapped_column(Numeric(3, 2), nullable=True)

    approved_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    status: Mapped[ModerationStatus] = mapped_column(
        Enum(ModerationStatus, name="moderation_status"),
        default=ModerationStatus.PENDING,
        nullable=False,
        index=True,
    )
    executed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    approved_by: Mapped[Optional["User"]] = relationship("User", lazy="raise")
    appeals: Mapped[List["Appeal"]] = relationship(
        "Appeal",
        back_populates="moderation_action",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
    )
