from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from devconnect.core import diagnostics
from devconnect.core.errors import ConflictError, NotFoundError
from devconnect.db.utils.session_management import DEFAULT_CONFLICT_MESSAGE, transaction, with_retry


def _operational_error():
    return OperationalError("SELECT 1", {}, Exception("database is locked"))


async def test_with_retry_retries_operational_errors():
    calls = []

    @with_retry(max_attempts=3, base_delay=0.01)
    async def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise _operational_error()
        return "ok"

    with patch("devconnect.db.utils.session_management.asyncio.sleep", AsyncMock()) as sleep:
        assert await flaky() == "ok"

    assert len(calls) == 3
    assert sleep.await_count == 2


async def test_with_retry_gives_up_after_max_attempts():
    @with_retry(max_attempts=2, base_delay=0.01)
    async def always_fails():
        raise _operational_error()

    with patch("devconnect.db.utils.session_management.asyncio.sleep", AsyncMock()):
        with pytest.raises(OperationalError):
            await always_fails()


@pytest.mark.parametrize("error", [
    NotFoundError("User not found"),
    IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed")),
])
async def test_with_retry_does_not_retry_other_errors(error):
    calls = []

    @with_retry(max_attempts=5)
    async def fails():
        calls.append(1)
        raise error

    with pytest.raises(type(error)):
        await fails()
    assert len(calls) == 1


async def test_track_db_counts_operations(monkeypatch):
    monkeypatch.setattr(diagnostics, "diagnostics_enabled", lambda: True)
    diagnostics.reset_metrics()

    @diagnostics.track_db
    async def lookup(session, user_id):
        return [user_id]

    assert await lookup(object(), "507f1f77bcf86cd799439011") == ["507f1f77bcf86cd799439011"]
    report = diagnostics.get_diagnostics_report()
    assert report["db_operations"] == 1
    assert report["errors"] == 0
    diagnostics.reset_metrics()


async def test_track_db_names_repository_operations_and_counts_errors(monkeypatch):
    monkeypatch.setattr(diagnostics, "diagnostics_enabled", lambda: True)
    diagnostics.reset_metrics()

    class ProfileRepository:
        @diagnostics.track_db
        async def load(self, session, user_id):
            return [user_id]

        @diagnostics.track_db
        async def broken(self, session):
            raise NotFoundError("User not found")

    repo = ProfileRepository()
    await repo.load(object(), "a")
    await repo.load(object(), "b")
    with pytest.raises(NotFoundError):
        await repo.broken(object())

    report = diagnostics.get_diagnostics_report()
    assert report["db_operations"] == 3
    assert report["errors"] == 1
    assert report["busiest_operations"]["ProfileRepository.load"] == 2
    diagnostics.reset_metrics()


async def test_track_db_is_transparent_when_disabled(monkeypatch):
    monkeypatch.setattr(diagnostics, "diagnostics_enabled", lambda: False)
    diagnostics.reset_metrics()

    @diagnostics.track_db
    async def lookup(session):
        return "row"

    assert await lookup(object()) == "row"
    assert diagnostics.get_diagnostics_report()["db_operations"] == 0


async def test_transaction_turns_lock_timeouts_into_conflicts(test_session_maker):
    with pytest.raises(ConflictError) as exc_info:
        async with transaction(test_session_maker):
            raise _operational_error()
    assert exc_info.value.message == DEFAULT_CONFLICT_MESSAGE
    assert isinstance(exc_info.value.__cause__, OperationalError)


async def test_transaction_turns_integrity_errors_into_conflicts(test_session_maker):
    with pytest.raises(ConflictError, match="Pair taken"):
        async with transaction(test_session_maker, "Pair taken"):
            raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))
