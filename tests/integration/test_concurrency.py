import asyncio

import pytest
from sqlalchemy import func, select

from devconnect.connections import RelationshipRecord
from devconnect.core.errors import ConflictError, DevConnectError
from devconnect.db.models import Relationship, RelationshipStatus
from devconnect.db.repositories import relationship_repo
from devconnect.db.utils.session_management import transaction

pytestmark = pytest.mark.lifecycle


async def relationship_count(session_maker, user_a, user_b) -> int:
    async with session_maker() as session:
        result = await session.execute(
            select(func.count())
            .select_from(Relationship)
            .where(Relationship.from_user_id.in_([user_a, user_b]), Relationship.to_user_id.in_([user_a, user_b]))
        )
        return result.scalar_one()


async def test_opposite_requests_race_leaves_one_record(connection_engine, test_session_maker, alice, bob):
    for _ in range(5):
        results = await asyncio.gather(
            connection_engine.send_connection_request(alice.id, bob.id),
            connection_engine.send_connection_request(bob.id, alice.id),
            return_exceptions=True,
        )
        created = [r for r in results if isinstance(r, RelationshipRecord)]
        conflicts = [r for r in results if isinstance(r, ConflictError)]
        assert len(created) == 1, results
        assert len(conflicts) == 1, results
        assert await relationship_count(test_session_maker, alice.id, bob.id) == 1

        winner = created[0]
        await connection_engine.cancel_request(winner.id, winner.from_user_id)


async def test_accept_and_cancel_race_has_one_winner(connection_engine, test_session_maker, alice, bob):
    record = await connection_engine.send_connection_request(alice.id, bob.id)

    results = await asyncio.gather(
        connection_engine.accept_connection(record.id, bob.id),
        connection_engine.cancel_request(record.id, alice.id),
        return_exceptions=True,
    )
    failures = [r for r in results if isinstance(r, DevConnectError)]
    assert len(failures) == 1, results

    status = await connection_engine.get_connection_status(alice.id, bob.id)
    if isinstance(results[0], RelationshipRecord):
        assert status.status == RelationshipStatus.ACCEPTED
    else:
        assert status.status is None


async def test_store_rejects_reverse_duplicate(test_session_maker, alice, bob):
    async with transaction(test_session_maker) as session:
        await relationship_repo.create_between(session, alice.id, bob.id, RelationshipStatus.PENDING)

    with pytest.raises(ConflictError):
        async with transaction(test_session_maker) as session:
            await relationship_repo.create_between(session, bob.id, alice.id, RelationshipStatus.PENDING)

    assert await relationship_count(test_session_maker, alice.id, bob.id) == 1
