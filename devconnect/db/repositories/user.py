from typing import Iterable, Sequence

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from devconnect.core.diagnostics import track_db
from devconnect.db.models import User
from devconnect.db.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    def __init__(self):
        super().__init__(User)

    @track_db
    async def get_by_email(self, session: AsyncSession, email: str) -> User | None:
        return await self.get_by_attribute(session, "email", email.lower())

    @track_db
    async def get_by_username(self, session: AsyncSession, username: str) -> User | None:
        return await self.get_by_attribute(session, "username", username.lower())

    @track_db
    async def get_by_mobile(self, session: AsyncSession, mobile_number: str) -> User | None:
        return await self.get_by_attribute(session, "mobile_number", mobile_number)

    @track_db
    async def find_existing(
        self, session: AsyncSession, email: str, username: str, mobile_number: str | None = None
    ) -> User | None:
        """Find a user holding the email, the username or the mobile number."""
        clauses = [User.email == email.lower(), User.username == username.lower()]
        if mobile_number:
            clauses.append(User.mobile_number == mobile_number)
        stmt = select(User).where(or_(*clauses)).limit(1)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def exists(self, session: AsyncSession, user_id: str) -> bool:
        result = await session.execute(select(User.id).where(User.id == user_id))
        return result.scalar_one_or_none() is not None

    @track_db
    async def candidate_ids_excluding(self, session: AsyncSession, excluded_ids: Iterable[str]) -> list[str]:
        """Ids of every user not in ``excluded_ids``."""
        excluded = list(excluded_ids)
        stmt = select(User.id)
        if excluded:
            stmt = stmt.where(User.id.not_in(excluded))
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @track_db
    async def get_many(self, session: AsyncSession, user_ids: Sequence[str]) -> list[User]:
        """Load users by id, preserving the order of ``user_ids``."""
        if not user_ids:
            return []
        result = await session.execute(select(User).where(User.id.in_(user_ids)))
        by_id = {user.id: user for user in result.scalars().all()}
        return [by_id[user_id] for user_id in user_ids if user_id in by_id]


user_repo = UserRepository()
