"""
Connection Engine.

State machine for the single relationship record two users share:

    (none) --send--> PENDING --accept--> ACCEPTED
                        |  \\--reject--> REJECTED --send--> PENDING (new record)
                        \\--cancel--> (none)
    any state --block--> BLOCKED --unblock--> (none)

Every mutation runs inside one transaction: the record is read (and locked
where the store supports it), validated, then changed. Nothing is retried;
precondition failures surface as DevConnectError subclasses.
"""
import random
from typing import Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from devconnect.connections import messages
from devconnect.connections.schemas import ConnectionStatusView, ConnectionView, RelationshipRecord
from devconnect.core.errors import ConflictError, DevConnectError, ForbiddenError, InvalidInputError, NotFoundError
from devconnect.db.identifiers import ensure_valid_id
from devconnect.db.models import Relationship, RelationshipStatus
from devconnect.db.repositories import relationship_repo, user_repo
from devconnect.db.utils.session_management import transaction, with_retry
from devconnect.users.directory import UserDirectory
from devconnect.users.schemas import UserSuggestion

# Statuses that keep a user out of the other party's suggestions.
# REJECTED is not one of them: a rejected user can be suggested again.
SUGGESTION_EXCLUDING_STATUSES = frozenset({
    RelationshipStatus.PENDING,
    RelationshipStatus.ACCEPTED,
    RelationshipStatus.BLOCKED,
})


def refused(error: DevConnectError, action: str) -> DevConnectError:
    """Log a rejected precondition at DEBUG and hand the error back to be raised."""
    logger.debug(f"Refused {action}: {error.message}")
    return error


class ConnectionEngine:
    """Request lifecycle, blocking and relationship queries."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        directory: Optional[UserDirectory] = None,
        rng: Optional[random.Random] = None,
    ):
        self.session_factory = session_factory
        self.directory = directory or UserDirectory(session_factory)
        self.rng = rng or random.Random()

    # ------------------------------------------------------------------
    # Request lifecycle
    # ------------------------------------------------------------------

    async def send_connection_request(self, from_user_id: str, to_user_id: str) -> RelationshipRecord:
        """
        Create a PENDING request from ``from_user_id`` to ``to_user_id``.

        A previous REJECTED record for the pair is deleted and replaced by a
        new one. Any other existing record makes the request fail.
        """
        from_user_id = ensure_valid_id(from_user_id, "user")
        to_user_id = ensure_valid_id(to_user_id, "user")
        if from_user_id == to_user_id:
            raise refused(InvalidInputError(messages.SELF_REQUEST), f"request {from_user_id} -> {to_user_id}")

        async with transaction(self.session_factory, messages.PAIR_ALREADY_EXISTS) as session:
            await self.directory.ensure_exists(session, from_user_id)
            await self.directory.ensure_exists(session, to_user_id)

            existing = await relationship_repo.find_by_pair(session, from_user_id, to_user_id, for_update=True)
            if existing is None:
                record = await relationship_repo.create_between(
                    session, from_user_id, to_user_id, RelationshipStatus.PENDING
                )
            else:
                self._check_can_resend(existing, from_user_id)
                logger.debug(f"Replacing rejected relationship {existing.id} with a new request")
                record = await relationship_repo.replace(
                    session, existing, from_user_id, to_user_id, RelationshipStatus.PENDING
                )
            result = RelationshipRecord.model_validate(record)

        logger.info(f"Connection request {result.id} sent from {from_user_id} to {to_user_id}")
        return result

    @staticmethod
    def _check_can_resend(existing: Relationship, from_user_id: str) -> None:
        action = f"request from {from_user_id} on relationship {existing.id}"
        if existing.status == RelationshipStatus.BLOCKED:
            raise refused(ForbiddenError(messages.BLOCKED_ACTION), action)
        if existing.status == RelationshipStatus.PENDING:
            if existing.from_user_id == from_user_id:
                raise refused(ConflictError(messages.REQUEST_ALREADY_SENT), action)
            raise refused(ConflictError(messages.REQUEST_ALREADY_RECEIVED), action)
        if existing.status == RelationshipStatus.ACCEPTED:
            raise refused(ConflictError(messages.ALREADY_CONNECTED), action)

    async def accept_connection(self, relationship_id: str, user_id: str) -> RelationshipRecord:
        """Receiver accepts a pending request."""
        relationship_id = ensure_valid_id(relationship_id, "connection")
        user_id = ensure_valid_id(user_id, "user")

        async with transaction(self.session_factory) as session:
            record = await self._load_pending(session, relationship_id, user_id, "accept", as_receiver=True)

            # A block committed between our read and this write would leave
            # the pair both blocked and connected.
            if await relationship_repo.has_block_between(session, record.from_user_id, record.to_user_id):
                raise refused(ForbiddenError(messages.BLOCKED_TRANSITION), f"accept of {relationship_id}")

            record = await relationship_repo.set_status(session, record, RelationshipStatus.ACCEPTED)
            result = RelationshipRecord.model_validate(record)

        logger.info(f"Connection {relationship_id} accepted by {user_id}")
        return result

    async def reject_connection(self, relationship_id: str, user_id: str) -> RelationshipRecord:
        """Receiver rejects a pending request. The record stays, as REJECTED."""
        relationship_id = ensure_valid_id(relationship_id, "connection")
        user_id = ensure_valid_id(user_id, "user")

        async with transaction(self.session_factory) as session:
            record = await self._load_pending(session, relationship_id, user_id, "reject", as_receiver=True)
            record = await relationship_repo.set_status(session, record, RelationshipStatus.REJECTED)
            result = RelationshipRecord.model_validate(record)

        logger.info(f"Connection {relationship_id} rejected by {user_id}")
        return result

    async def cancel_request(self, relationship_id: str, user_id: str) -> None:
        """Sender withdraws a pending request. The record is deleted."""
        relationship_id = ensure_valid_id(relationship_id, "connection")
        user_id = ensure_valid_id(user_id, "user")

        async with transaction(self.session_factory) as session:
            record = await self._load_pending(session, relationship_id, user_id, "cancel", as_receiver=False)
            await relationship_repo.remove(session, record)

        logger.info(f"Connection request {relationship_id} cancelled by {user_id}")

    async def _load_pending(
        self,
        session: AsyncSession,
        relationship_id: str,
        user_id: str,
        verb: str,
        as_receiver: bool,
    ) -> Relationship:
        """Fetch and lock a record, checking the caller's role and that it is still PENDING."""
        action = f"{verb} of {relationship_id} by {user_id}"
        record = await relationship_repo.get(session, relationship_id, for_update=True)
        if record is None:
            raise refused(NotFoundError(messages.REQUEST_NOT_FOUND), action)

        party = record.to_user_id if as_receiver else record.from_user_id
        if party != user_id:
            raise refused(ForbiddenError(messages.NOT_AUTHORIZED), action)

        if record.status != RelationshipStatus.PENDING:
            raise refused(ConflictError(messages.wrong_status(verb, record.status)), action)
        return record

    # ------------------------------------------------------------------
    # Blocking
    # ------------------------------------------------------------------

    async def block_user(self, user_id: str, target_user_id: str) -> RelationshipRecord:
        """
        Block ``target_user_id``.

        Whatever record the pair had, in either direction, is replaced by a
        BLOCKED record with the blocker as ``from_user_id``.
        """
        user_id = ensure_valid_id(user_id, "user")
        target_user_id = ensure_valid_id(target_user_id, "user")
        if user_id == target_user_id:
            raise refused(InvalidInputError(messages.SELF_BLOCK), f"block {user_id} -> {target_user_id}")

        async with transaction(self.session_factory, messages.PAIR_ALREADY_EXISTS) as session:
            await self.directory.ensure_exists(session, target_user_id)

            existing = await relationship_repo.find_by_pair(session, user_id, target_user_id, for_update=True)
            if existing is None:
                record = await relationship_repo.create_between(
                    session, user_id, target_user_id, RelationshipStatus.BLOCKED
                )
            else:
                if existing.status == RelationshipStatus.BLOCKED and existing.from_user_id == user_id:
                    raise refused(ConflictError(messages.ALREADY_BLOCKED), f"block {user_id} -> {target_user_id}")
                logger.debug(f"Block by {user_id} replaces {existing.status.value} relationship {existing.id}")
                record = await relationship_repo.replace(
                    session, existing, user_id, target_user_id, RelationshipStatus.BLOCKED
                )
            result = RelationshipRecord.model_validate(record)

        logger.info(f"User {user_id} blocked {target_user_id} ({result.id})")
        return result

    async def unblock_user(self, user_id: str, target_user_id: str) -> None:
        """Remove a block the caller placed. The pair goes back to having no record."""
        user_id = ensure_valid_id(user_id, "user")
        target_user_id = ensure_valid_id(target_user_id, "user")
        if user_id == target_user_id:
            raise refused(InvalidInputError(messages.SELF_UNBLOCK), f"unblock {user_id} -> {target_user_id}")

        async with transaction(self.session_factory) as session:
            record = await relationship_repo.find_directed(
                session, user_id, target_user_id, RelationshipStatus.BLOCKED
            )
            if record is None:
                raise refused(NotFoundError(messages.BLOCK_NOT_FOUND), f"unblock {user_id} -> {target_user_id}")
            await relationship_repo.remove(session, record)

        logger.info(f"User {user_id} unblocked {target_user_id}")

    @with_retry()
    async def check_block_status(self, user_id: str, other_user_id: str) -> bool:
        """True if either user has blocked the other."""
        user_id = ensure_valid_id(user_id, "user")
        other_user_id = ensure_valid_id(other_user_id, "user")
        async with self.session_factory() as session:
            return await relationship_repo.has_block_between(session, user_id, other_user_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @with_retry()
    async def get_received_requests(self, user_id: str) -> list[ConnectionView]:
        user_id = ensure_valid_id(user_id, "user")
        async with self.session_factory() as session:
            records = await relationship_repo.list_received(session, user_id)
            return [ConnectionView.model_validate(record) for record in records]

    @with_retry()
    async def get_sent_requests(self, user_id: str) -> list[ConnectionView]:
        user_id = ensure_valid_id(user_id, "user")
        async with self.session_factory() as session:
            records = await relationship_repo.list_sent(session, user_id)
            return [ConnectionView.model_validate(record) for record in records]

    @with_retry()
    async def get_connections(self, user_id: str) -> list[ConnectionView]:
        user_id = ensure_valid_id(user_id, "user")
        async with self.session_factory() as session:
            records = await relationship_repo.list_connections(session, user_id)
            return [ConnectionView.model_validate(record) for record in records]

    @with_retry()
    async def get_connection_status(self, user_id: str, other_user_id: str) -> ConnectionStatusView:
        """Describe the pair's relationship from ``user_id``'s point of view."""
        user_id = ensure_valid_id(user_id, "user")
        other_user_id = ensure_valid_id(other_user_id, "user")
        if user_id == other_user_id:
            return ConnectionStatusView(message=messages.STATUS_SELF)

        async with self.session_factory() as session:
            record = await relationship_repo.find_by_pair(session, user_id, other_user_id)

        if record is None:
            return ConnectionStatusView(message=messages.STATUS_NONE)
        return ConnectionStatusView(
            status=record.status,
            relationship_id=record.id,
            message=messages.status_message(record.status, initiated_by_caller=record.from_user_id == user_id),
        )

    @with_retry()
    async def get_suggestions(self, user_id: str, limit: int) -> list[UserSuggestion]:
        """
        Random users ``user_id`` could send a request to.

        Excludes the caller and anyone sharing a PENDING, ACCEPTED or BLOCKED
        record with them. The sample is drawn fresh on every call.
        """
        user_id = ensure_valid_id(user_id, "user")
        if limit <= 0:
            return []

        async with self.session_factory() as session:
            excluded = await relationship_repo.related_user_ids(session, user_id, SUGGESTION_EXCLUDING_STATUSES)
            excluded.add(user_id)
            candidates = await user_repo.candidate_ids_excluding(session, excluded)
            chosen = self.rng.sample(candidates, min(limit, len(candidates)))
            users = await user_repo.get_many(session, chosen)
            suggestions = [UserSuggestion.model_validate(user) for user in users]

        logger.debug(f"Suggested {len(suggestions)} of {len(candidates)} candidates to {user_id}")
        return suggestions
