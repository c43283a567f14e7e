"""
Repository pattern implementation for data access.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, Sequence, Tuple, Type, TypeVar

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager, selectinload

from ..core.exceptions import ValidationError
from .base import Base, as_utc
from .models import ActionType, Appeal, AppealStatus, ModerationAction, ModerationStatus, User

T = TypeVar('T', bound=Base)


@dataclass
class CursorPage(Generic[T]):
    """One page of a keyset-paginated listing."""
    items: List[T] = field(default_factory=list)
    next_cursor: Optional[uuid.UUID] = None
    total_count: int = 0


class AsyncBaseRepository(Generic[T]):
    """
    Async base repository class for CRUD operations.
    """

    model_class: Type[T]

    def __init__(self, session: AsyncSession):
        """
        Initialize async repository.

        Args:
            session: Async database session
        """
        self.session = session

    async def get(self, id: uuid.UUID, *options: Any, for_update: bool = False) -> Optional[T]:
        """
        Async get a record by ID.

        Args:
            id: Record ID
            *options: Loader options (e.g. selectinload)
            for_update: Lock the row until the transaction ends

        Returns:
            Model instance or None
        """
        query = (
            select(self.model_class)
            .where(self.model_class.id == id)
            .options(*options)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()

        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def create(self, **kwargs) -> T:
        """Async create a new record and flush it to obtain defaults."""
        instance = self.model_class(**kwargs)
        self.session.add(instance)
        await self.session.flush()
        return instance

    async def count(self, *conditions: Any) -> int:
        """Async count records matching all conditions."""
        query = select(func.count()).select_from(self.model_class)
        if conditions:
            query = query.where(and_(*conditions))

        result = await self.session.execute(query)
        return result.scalar_one()

    async def count_by(self, column: Any, *conditions: Any) -> Dict[Any, int]:
        """Group record counts by one column."""
        query = select(column, func.count()).select_from(self.model_class).group_by(column)
        if conditions:
            query = query.where(and_(*conditions))

        result = await self.session.execute(query)
        return {value: count for value, count in result.all()}

    async def oldest(self, *conditions: Any) -> Optional[datetime]:
        """Creation time of the oldest record matching all conditions."""
        query = select(func.min(self.model_class.created_at))
        if conditions:
            query = query.where(and_(*conditions))

        return (await self.session.execute(query)).scalar_one()

    async def update_where(self, conditions: Sequence[Any], values: Dict[str, Any]) -> int:
        """
        Conditionally update records.

        The conditions are evaluated by the database as part of the UPDATE,
        so a status check placed here is a compare-and-set.

        Args:
            conditions: Filter conditions
            values: Values to update

        Returns:
            Number of records updated
        """
        stmt = (
            update(self.model_class)
            .where(and_(*conditions))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def paginate(
        self,
        conditions: Sequence[Any],
        limit: int,
        cursor: Optional[uuid.UUID] = None,
        descending: bool = True,
        options: Sequence[Any] = (),
    ) -> CursorPage[T]:
        """
        Keyset pagination ordered by (created_at, id).

        The cursor is the id of the last item of the previous page; the next
        page starts strictly after it in the chosen order.

        Args:
            conditions: Filter conditions
            limit: Page size
            cursor: Last-seen record id
            descending: Newest first when True, oldest first otherwise
            options: Loader options for the page query

        Returns:
            CursorPage with items, next cursor and total count
        """
        model = self.model_class
        total_count = await self.count(*conditions)

        query = select(model).where(*conditions).options(*options)

        if cursor is not None:
            anchor = (
                await self.session.execute(
                    select(model.created_at, model.id).where(model.id == cursor)
                )
            ).one_or_none()
            if anchor is None:
                raise ValidationError(f"Invalid cursor: {cursor}")

            if descending:
                query = query.where(or_(
                    model.created_at < anchor.created_at,
                    and_(model.created_at == anchor.created_at, model.id < anchor.id),
                ))
            else:
                query = query.where(or_(
                    model.created_at > anchor.created_at,
                    and_(model.created_at == anchor.created_at, model.id > anchor.id),
                ))

        if descending:
            query = query.order_by(model.created_at.desc(), model.id.desc())
        else:
            query = query.order_by(model.created_at.asc(), model.id.asc())

        result = await self.session.execute(query.limit(limit))
        items = list(result.scalars().all())

        next_cursor = items[-1].id if len(items) == limit else None
        return CursorPage(items=items, next_cursor=next_cursor, total_count=total_count)


class UserRepository(AsyncBaseRepository[User]):
    model_class = User


class ModerationActionRepository(AsyncBaseRepository[ModerationAction]):
    """
    Data access for moderation actions.
    """

    model_class = ModerationAction

    async def get_with_approver(self, id: uuid.UUID) -> Optional[ModerationAction]:
        return await self.get(id, selectinload(ModerationAction.approved_by))

    async def get_with_appeals(self, id: uuid.UUID) -> Optional[ModerationAction]:
        return await self.get(
            id,
            selectinload(ModerationAction.approved_by),
            selectinload(ModerationAction.appeals),
        )

    async def paginate_with_approver(
        self,
        conditions: Sequence[Any],
        limit: int,
        cursor: Optional[uuid.UUID] = None,
    ) -> CursorPage[ModerationAction]:
        return await self.paginate(
            conditions,
            limit,
            cursor,
            descending=True,
            options=(selectinload(ModerationAction.approved_by),),
        )

    async def list_pending_recommendations(self, limit: int) -> List[ModerationAction]:
        """Pending AI recommendations, most confident first, then oldest first."""
        result = await self.session.execute(
            select(ModerationAction)
            .where(
                ModerationAction.ai_recommended.is_(True),
                ModerationAction.status == ModerationStatus.PENDING,
            )
            .options(selectinload(ModerationAction.approved_by))
            .order_by(
                ModerationAction.ai_confidence.desc(),
                ModerationAction.created_at.asc(),
                ModerationAction.id.asc(),
            )
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_by_action_type(self, *conditions: Any) -> Dict[ActionType, int]:
        return await self.count_by(ModerationAction.action_type, *conditions)

    async def list_ranked(self, rank: Any, limit: int, *conditions: Any) -> List[Tuple[ModerationAction, int]]:
        """Actions paired with a computed rank, lowest rank first, then oldest first."""
        result = await self.session.execute(
            select(ModerationAction, rank)
            .where(*conditions)
            .order_by(rank, ModerationAction.created_at.asc(), ModerationAction.id.asc())
            .limit(limit)
        )
        return [(action, action_rank) for action, action_rank in result.all()]

    async def resolution_times(self, *conditions: Any) -> List[Tuple[datetime, datetime]]:
        """(created_at, approved_at) of approved actions matching all conditions."""
        result = await self.session.execute(
            select(ModerationAction.created_at, ModerationAction.approved_at)
            .where(ModerationAction.approved_at.is_not(None), *conditions)
        )
        return [(created_at, approved_at) for created_at, approved_at in result.all()]

    async def average_confidence(self, *conditions: Any) -> Optional[float]:
        query = select(func.avg(ModerationAction.ai_confidence))
        if conditions:
            query = query.where(and_(*conditions))

        value = (await self.session.execute(query)).scalar_one()
        return float(value) if value is not None else None


class AppealRepository(AsyncBaseRepository[Appeal]):
    """
    Data access for appeals.
    """

    model_class = Appeal

    async def get_with_action(self, id: uuid.UUID, for_update: bool = False) -> Optional[Appeal]:
        return await self.get(
            id,
            selectinload(Appeal.moderation_action).selectinload(ModerationAction.approved_by),
            for_update=for_update,
        )

    async def find_live(self, moderation_action_id: uuid.UUID, appellant_id: uuid.UUID) -> Optional[Appeal]:
        """Find the PENDING or UNDER_REVIEW appeal for an (action, appellant) pair."""
        result = await self.session.execute(
            select(Appeal).where(
                Appeal.moderation_action_id == moderation_action_id,
                Appeal.appellant_id == appellant_id,
                Appeal.status.in_((AppealStatus.PENDING, AppealStatus.UNDER_REVIEW)),
            )
        )
        return result.scalars().first()

    async def count_by_status(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Dict[AppealStatus, int]:
        """Group appeal counts by status within an inclusive creation window."""
        conditions = []
        if start_date is not None:
            conditions.append(Appeal.created_at >= as_utc(start_date))
        if end_date is not None:
            conditions.append(Appeal.created_at <= as_utc(end_date))

        return await self.count_by(Appeal.status, *conditions)

    async def count_with_action(self, *conditions: Any) -> int:
        """Count appeals whose conditions may reference the contested action."""
        result = await self.session.execute(
            select(func.count())
            .select_from(Appeal)
            .join(Appeal.moderation_action)
            .where(*conditions)
        )
        return result.scalar_one()

    async def list_ranked(self, rank: Any, limit: int, *conditions: Any) -> List[Tuple[Appeal, int]]:
        """Appeals with their action loaded, paired with a computed rank, lowest first, then oldest first."""
        result = await self.session.execute(
            select(Appeal, rank)
            .join(Appeal.moderation_action)
            .options(contains_eager(Appeal.moderation_action))
            .where(*conditions)
            .order_by(rank, Appeal.created_at.asc(), Appeal.id.asc())
            .limit(limit)
        )
        return [(appeal, appeal_rank) for appeal, appeal_rank in result.all()]
