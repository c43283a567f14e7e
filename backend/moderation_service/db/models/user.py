"""
User model.

Users are owned by the user service; the moderation service reads them to
resolve moderators and to project an approver's public identity.
"""

from decimal import Decimal
from typing import Dict

from sqlalchemy import Boolean, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from ..base import Base, CreatedAtMixin, UUIDMixin


class User(UUIDMixin, CreatedAtMixin, Base):
    """
    Platform user as seen by the moderation service.
    """

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(50), nullable=False)
    is_moderator: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Trust scores (0.00 - 1.00), maintained by the user service
    trust_score_ability: Mapped[Decimal] = mapped_column(
        Numeric(3, 2), default=Decimal("0.50"), nullable=False
    )
    trust_score_benevolence: Mapped[Decimal] = mapped_column(
        Numeric(3, 2), default=Decimal("0.50"), nullable=False
    )
    trust_score_integrity: Mapped[Decimal] = mapped_column(
        Numeric(3, 2), default=Decimal("0.50"), nullable=False
    )

    def trust_scores(self) -> Dict[str, float]:
        return {
            "ability": float(self.trust_score_ability),
            "benevolence": float(self.trust_score_benevolence),
            "integrity": float(self.trust_score_integrity),
        }
