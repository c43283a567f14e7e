"""
Appeal model.

An appeal contests a moderation action on behalf of the appellant. At most
one live (PENDING or UNDER_REVIEW) appeal may exist for an
(action, appellant) pair; resolved appeals do not count.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..base import Base, CreatedAtMixin, UUIDMixin
from .enums import AppealStatus

if TYPE_CHECKING:
    from .moderation_action import ModerationAction

LIVE_APPEAL_PREDICATE = text("status IN ('PENDING', 'UNDER_REVIEW')")


class Appeal(UUIDMixin, CreatedAtMixin, Base):
    """
    Appeal against a moderation action and its review outcome.
    """

    __table_args__ = (
        Index(
            "uq_appeals_live_action_appellant",
            "moderation_action_id",
            "appellant_id",
            unique=True,
            postgresql_where=LIVE_APPEAL_PREDICATE,
            sqlite_where=LIVE_APPEAL_PREDICATE,
        ),
    )

    moderation_action_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("moderation_actions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    appellant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[AppealStatus] = mapped_column(
        Enum(AppealStatus, name="appeal_status"),
        default=AppealStatus.PENDING,
        nullable=False,
        index=True,
    )
    reviewer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    decision_reasoning: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    moderation_action: Mapped["ModerationAction"] = relationship(
        "ModerationAction", back_populates="appeals", lazy="raise"
    )
