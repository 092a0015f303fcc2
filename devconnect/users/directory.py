from typing import Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from devconnect.core.errors import ConflictError, NotFoundError
from devconnect.db.identifiers import ensure_valid_id
from devconnect.db.models import User
from devconnect.db.repositories import user_repo
from devconnect.db.utils.session_management import transaction, with_retry
from devconnect.users.schemas import NewUser, UserProfile

USER_NOT_FOUND = "User not found"


class UserDirectory:
    """Owns user identity records: registration and lookups."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def register_user(self, new_user: NewUser) -> UserProfile:
        """
        Store a new user.

        Username and email are lowercased. A taken email, username or mobile
        number is a ConflictError, checked in that order against the first
        matching record.
        """
        email = new_user.email.strip().lower()
        username = new_user.username.strip().lower()
        mobile_number = new_user.mobile_number

        async with transaction(self.session_factory, "User with these details already exists") as session:
            existing = await user_repo.find_existing(session, email, username, mobile_number)
            if existing is not None:
                if existing.email == email:
                    raise ConflictError("User with this email already exists")
                if existing.username == username:
                    raise ConflictError("Username is already taken")
                raise ConflictError("Mobile number is already registered")

            data = new_user.model_dump()
            data.update(email=email, username=username, skills=[])
            user = await user_repo.create(session, data)
            profile = UserProfile.model_validate(user)

        logger.info(f"Registered user {profile.id} ({profile.username})")
        return profile

    @with_retry()
    async def find_by_id(self, user_id: str) -> UserProfile:
        user_id = ensure_valid_id(user_id, "user")
        async with self.session_factory() as session:
            user = await user_repo.get(session, user_id)
            return self._profile_or_raise(user)

    @with_retry()
    async def find_by_email(self, email: str) -> UserProfile:
        async with self.session_factory() as session:
            user = await user_repo.get_by_email(session, email.strip())
            return self._profile_or_raise(user)

    @with_retry()
    async def find_by_username(self, username: str) -> UserProfile:
        async with self.session_factory() as session:
            user = await user_repo.get_by_username(session, username.strip())
            return self._profile_or_raise(user)

    @with_retry()
    async def find_by_mobile(self, mobile_number: str) -> UserProfile:
        async with self.session_factory() as session:
            user = await user_repo.get_by_mobile(session, mobile_number.strip())
            return self._profile_or_raise(user)

    async def ensure_exists(self, session: AsyncSession, user_id: str) -> None:
        """Raise NotFoundError unless the user exists. Runs in the caller's session."""
        if not await user_repo.exists(session, user_id):
            raise NotFoundError(USER_NOT_FOUND)

    @staticmethod
    def _profile_or_raise(user: Optional[User]) -> UserProfile:
        if user is None:
            raise NotFoundError(USER_NOT_FOUND)
        return UserProfile.model_validate(user)
