import pytest
from pydantic import ValidationError

from devconnect.core.errors import ConflictError, InvalidInputError, NotFoundError
from devconnect.db.identifiers import generate_id, is_valid_id
from devconnect.users import NewUser

pytestmark = pytest.mark.directory


async def test_register_normalises_handles(make_user):
    profile = await make_user("JohnDoe", email="John.Doe@Example.com", mobile_number="9876543210", age=28)

    assert is_valid_id(profile.id)
    assert profile.username == "johndoe"
    assert profile.email == "john.doe@example.com"
    assert profile.age == 28
    assert profile.skills == []
    assert "password_hash" not in profile.model_dump()


async def test_duplicate_email_or_username_is_conflict(make_user):
    await make_user("johndoe", email="john@example.com")

    with pytest.raises(ConflictError, match="User with this email already exists"):
        await make_user("someoneelse", email="JOHN@example.com")

    with pytest.raises(ConflictError, match="Username is already taken"):
        await make_user("JohnDoe", email="other@example.com")


async def test_duplicate_mobile_number_is_conflict(make_user):
    await make_user("first", mobile_number="9123456780")

    with pytest.raises(ConflictError) as exc_info:
        await make_user("second", mobile_number="9123456780")
    assert exc_info.value.message == "Mobile number is already registered"

    # Users without a mobile number never clash on it
    await make_user("third")
    await make_user("fourth")


async def test_lookups(directory, make_user):
    created = await make_user("janedoe", mobile_number="9123456780")

    assert (await directory.find_by_id(created.id)).id == created.id
    assert (await directory.find_by_id(created.id.upper())).id == created.id
    assert (await directory.find_by_email("JaneDoe@Example.com")).id == created.id
    assert (await directory.find_by_username("JANEDOE")).id == created.id
    assert (await directory.find_by_mobile("9123456780")).id == created.id


async def test_missing_users_are_not_found(directory):
    with pytest.raises(NotFoundError, match="User not found"):
        await directory.find_by_id(generate_id())
    with pytest.raises(NotFoundError):
        await directory.find_by_email("nobody@example.com")
    with pytest.raises(NotFoundError):
        await directory.find_by_username("nobody")
    with pytest.raises(NotFoundError):
        await directory.find_by_mobile("0000000000")


async def test_find_by_malformed_id(directory):
    with pytest.raises(InvalidInputError, match="Invalid user ID format"):
        await directory.find_by_id("12345")


@pytest.mark.parametrize("overrides", [
    {"username": "jd"},
    {"first_name": "J"},
    {"mobile_number": "123"},
    {"age": 17},
])
def test_new_user_validation(overrides):
    data = {
        "first_name": "John",
        "last_name": "Doe",
        "username": "johndoe",
        "email": "john@example.com",
        "password_hash": "hashed",
    }
    data.update(overrides)
    with pytest.raises(ValidationError):
        NewUser(**data)
