from typing import Iterable

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from devconnect.core.diagnostics import track_db
from devconnect.db.base import utcnow
from devconnect.db.models import Relationship, RelationshipStatus, canonical_pair
from devconnect.db.repositories.base import BaseRepository


def pair_clause(user_a: str, user_b: str):
    """WHERE clause matching the record for the unordered pair {user_a, user_b}."""
    low, high = canonical_pair(user_a, user_b)
    return and_(Relationship.pair_low_id == low, Relationship.pair_high_id == high)


def involving_clause(user_id: str):
    return or_(Relationship.from_user_id == user_id, Relationship.to_user_id == user_id)


class RelationshipRepository(BaseRepository[Relationship]):
    """Repository for relationship records."""

    def __init__(self):
        super().__init__(Relationship)

    @track_db
    async def find_by_pair(
        self,
        session: AsyncSession,
        user_a: str,
        user_b: str,
        for_update: bool = False,
    ) -> Relationship | None:
        """
        Find the record between two users, whichever of them initiated it.

        Args:
            session: Database session
            user_a: ID of one party
            user_b: ID of the other party
            for_update: Lock the row for the rest of the transaction

        Returns:
            The relationship, or None if the pair has none
        """
        stmt = select(Relationship).where(pair_clause(user_a, user_b))
        if for_update:
            stmt = stmt.with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @track_db
    async def find_directed(
        self,
        session: AsyncSession,
        from_user_id: str,
        to_user_id: str,
        status: RelationshipStatus,
    ) -> Relationship | None:
        """Find a record with exactly this direction and status."""
        stmt = select(Relationship).where(
            Relationship.from_user_id == from_user_id,
            Relationship.to_user_id == to_user_id,
            Relationship.status == status,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_between(
        self,
        session: AsyncSession,
        from_user_id: str,
        to_user_id: str,
        status: RelationshipStatus,
    ) -> Relationship:
        return await self.create(
            session,
            data={
                "from_user_id": from_user_id,
                "to_user_id": to_user_id,
                "status": status,
            },
        )

    async def replace(
        self,
        session: AsyncSession,
        existing: Relationship,
        from_user_id: str,
        to_user_id: str,
        status: RelationshipStatus,
    ) -> Relationship:
        """
        Delete ``existing`` and insert a fresh record for the same pair.

        Both writes land in the caller's transaction. The delete is flushed
        first so the pair constraint sees the slot as free.
        """
        await session.delete(existing)
        await session.flush()
        return await self.create_between(session, from_user_id, to_user_id, status)

    async def remove(self, session: AsyncSession, relationship: Relationship) -> None:
        await session.delete(relationship)
        await session.flush()

    async def set_status(
        self,
        session: AsyncSession,
        relationship: Relationship,
        status: RelationshipStatus,
    ) -> Relationship:
        """Change the status of a record in place."""
        relationship.status = status
        relationship.updated_at = utcnow()
        await session.flush()
        return relationship

    @track_db
    async def has_block_between(self, session: AsyncSession, user_a: str, user_b: str) -> bool:
        """True if the pair has a BLOCKED record, whoever the blocker is."""
        stmt = select(Relationship.id).where(
            pair_clause(user_a, user_b),
            Relationship.status == RelationshipStatus.BLOCKED,
        )
        result = await session.execute(stmt)
        return result.first() is not None

    def _with_users(self, stmt):
        return stmt.options(selectinload(Relationship.from_user), selectinload(Relationship.to_user))

    @track_db
    async def list_received(self, session: AsyncSession, user_id: str) -> list[Relationship]:
        """Pending requests addressed to ``user_id``, newest first."""
        stmt = self._with_users(
            select(Relationship)
            .where(
                Relationship.to_user_id == user_id,
                Relationship.status == RelationshipStatus.PENDING,
            )
            .order_by(Relationship.created_at.desc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @track_db
    async def list_sent(self, session: AsyncSession, user_id: str) -> list[Relationship]:
        """Pending requests sent by ``user_id``, newest first."""
        stmt = self._with_users(
            select(Relationship)
            .where(
                Relationship.from_user_id == user_id,
                Relationship.status == RelationshipStatus.PENDING,
            )
            .order_by(Relationship.created_at.desc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @track_db
    async def list_connections(self, session: AsyncSession, user_id: str) -> list[Relationship]:
        """Accepted connections in either direction, most recently updated first."""
        stmt = self._with_users(
            select(Relationship)
            .where(
                involving_clause(user_id),
                Relationship.status == RelationshipStatus.ACCEPTED,
            )
            .order_by(Relationship.updated_at.desc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @track_db
    async def related_user_ids(
        self,
        session: AsyncSession,
        user_id: str,
        statuses: Iterable[RelationshipStatus],
    ) -> set[str]:
        """Ids of every user sharing a record with ``user_id`` in one of ``statuses``."""
        stmt = select(Relationship.from_user_id, Relationship.to_user_id).where(
            involving_clause(user_id),
            Relationship.status.in_(list(statuses)),
        )
        result = await session.execute(stmt)
        related = set()
        for from_user_id, to_user_id in result.all():
            related.add(from_user_id)
            related.add(to_user_id)
        related.discard(user_id)
        return related


relationship_repo = RelationshipRepository()
