"""
Typed conversion between persisted entities and wire DTOs.

Every enum crossing the boundary goes through an explicit table. The tables
are checked for exhaustiveness at import time, so adding a variant on either
side without mapping it fails fast.
"""

from enum import Enum
from typing import Dict, Optional, Type, TypeVar

from ..db.base import as_utc
from ..db.models import (
    ActionType,
    Appeal,
    AppealStatus,
    ModerationAction,
    ModerationStatus,
    Severity,
    TargetType,
    User,
)
from .appeal import AppealResponse, AppealWithActionResponse
from .enums import (
    WireActionType,
    WireAppealStatus,
    WireModerationStatus,
    WireSeverity,
    WireTargetType,
)
from .moderation import (
    AppealSummary,
    ModerationActionDetailResponse,
    ModerationActionResponse,
    UserSummary,
)

K = TypeVar("K", bound=Enum)
V = TypeVar("V", bound=Enum)


def _exhaustive(table: Dict[K, V], source: Type[K], target: Type[V]) -> Dict[K, V]:
    missing = set(source) - set(table)
    unreachable = set(target) - set(table.values())
    if missing or unreachable:
        raise RuntimeError(
            f"Incomplete mapping {source.__name__} -> {target.__name__}: "
            f"missing={sorted(m.name for m in missing)} "
            f"unreachable={sorted(u.name for u in unreachable)}"
        )
    return table


TARGET_TYPE_TO_WIRE = _exhaustive({
    TargetType.RESPONSE: WireTargetType.RESPONSE,
    TargetType.USER: WireTargetType.USER,
    TargetType.TOPIC: WireTargetType.TOPIC,
}, TargetType, WireTargetType)

ACTION_TYPE_TO_WIRE = _exhaustive({
    ActionType.EDUCATE: WireActionType.EDUCATE,
    ActionType.WARN: WireActionType.WARN,
    ActionType.HIDE: WireActionType.HIDE,
    ActionType.REMOVE: WireActionType.REMOVE,
    ActionType.SUSPEND: WireActionType.SUSPEND,
    ActionType.BAN: WireActionType.BAN,
}, ActionType, WireActionType)

SEVERITY_TO_WIRE = _exhaustive({
    Severity.NON_PUNITIVE: WireSeverity.NON_PUNITIVE,
    Severity.CONSEQUENTIAL: WireSeverity.CONSEQUENTIAL,
}, Severity, WireSeverity)

MODERATION_STATUS_TO_WIRE = _exhaustive({
    ModerationStatus.PENDING: WireModerationStatus.PENDING,
    ModerationStatus.ACTIVE: WireModerationStatus.ACTIVE,
    ModerationStatus.APPEALED: WireModerationStatus.APPEALED,
    ModerationStatus.REVERSED: WireModerationStatus.REVERSED,
}, ModerationStatus, WireModerationStatus)

APPEAL_STATUS_TO_WIRE = _exhaustive({
    AppealStatus.PENDING: WireAppealStatus.PENDING,
    AppealStatus.UNDER_REVIEW: WireAppealStatus.UNDER_REVIEW,
    AppealStatus.UPHELD: WireAppealStatus.UPHELD,
    AppealStatus.DENIED: WireAppealStatus.DENIED,
}, AppealStatus, WireAppealStatus)

# Inbound tables
TARGET_TYPE_FROM_WIRE = {wire: domain for domain, wire in TARGET_TYPE_TO_WIRE.items()}
ACTION_TYPE_FROM_WIRE = {wire: domain for domain, wire in ACTION_TYPE_TO_WIRE.items()}
SEVERITY_FROM_WIRE = {wire: domain for domain, wire in SEVERITY_TO_WIRE.items()}
MODERATION_STATUS_FROM_WIRE = {wire: domain for domain, wire in MODERATION_STATUS_TO_WIRE.items()}


def user_to_summary(user: Optional[User]) -> Optional[UserSummary]:
    if user is None:
        return None
    return UserSummary(id=user.id, display_name=user.display_name)


def action_to_response(
    action: ModerationAction,
    approved_by: Optional[User] = None,
) -> ModerationActionResponse:
    """
    Map a moderation action to its wire DTO.

    Args:
        action: Persisted action
        approved_by: Approver, when the relationship was not eagerly loaded
    """
    if approved_by is None and "approved_by" in action.__dict__:
        approved_by = action.approved_by

    return ModerationActionResponse(
        id=action.id,
        target_type=TARGET_TYPE_TO_WIRE[action.target_type],
        target_id=action.target_id,
        action_type=ACTION_TYPE_TO_WIRE[action.action_type],
        severity=SEVERITY_TO_WIRE[action.severity],
        reasoning=action.reasoning,
        ai_recommended=action.ai_recommended,
        ai_confidence=float(action.ai_confidence) if action.ai_confidence is not None else None,
        approved_by=user_to_summary(approved_by),
        approved_at=as_utc(action.approved_at),
        status=MODERATION_STATUS_TO_WIRE[action.status],
        created_at=as_utc(action.created_at),
        executed_at=as_utc(action.executed_at),
    )


def appeal_to_summary(appeal: Appeal) -> AppealSummary:
    return AppealSummary(
        id=appeal.id,
        reason=appeal.reason,
        status=APPEAL_STATUS_TO_WIRE[appeal.status],
        created_at=as_utc(appeal.created_at),
    )


def action_to_detail(action: ModerationAction) -> ModerationActionDetailResponse:
    """Map an action with its appeals loaded; the latest appeal is attached."""
    latest = max(action.appeals, key=lambda a: as_utc(a.created_at), default=None)
    return ModerationActionDetailResponse(
        **action_to_response(action).model_dump(),
        appeal=appeal_to_summary(latest) if latest is not None else None,
        related_actions=[],
    )


def appeal_to_response(appeal: Appeal) -> AppealResponse:
    return AppealResponse(
        id=appeal.id,
        moderation_action_id=appeal.moderation_action_id,
        appellant_id=appeal.appellant_id,
        reason=appeal.reason,
        status=APPEAL_STATUS_TO_WIRE[appeal.status],
        reviewer_id=appeal.reviewer_id,
        decision_reasoning=appeal.decision_reasoning,
        created_at=as_utc(appeal.created_at),
        resolved_at=as_utc(appeal.resolved_at),
    )


def appeal_to_response_with_action(appeal: Appeal) -> AppealWithActionResponse:
    """Map an appeal whose moderation action relationship is loaded."""
    action = appeal.moderation_action
    return AppealWithActionResponse(
        **appeal_to_response(appeal).model_dump(),
        moderation_action=action_to_response(action) if action is not None else None,
    )
