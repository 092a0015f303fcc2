import pytest

from devconnect.core.errors import ErrorKind, InvalidInputError
from devconnect.db.identifiers import ID_LENGTH, ensure_valid_id, generate_id, is_valid_id
from devconnect.db.models import canonical_pair


def test_generated_ids_are_valid_and_distinct():
    ids = {generate_id() for _ in range(200)}
    assert len(ids) == 200
    for value in ids:
        assert len(value) == ID_LENGTH
        assert is_valid_id(value)


@pytest.mark.parametrize("value", [
    "",
    "507f1f77bcf86cd79943901",      # 23 chars
    "507f1f77bcf86cd7994390111",    # 25 chars
    "507f1f77bcf86cd79943901z",
    "not-an-id",
    None,
    12345,
])
def test_malformed_ids_are_rejected(value):
    assert not is_valid_id(value)
    with pytest.raises(InvalidInputError) as exc_info:
        ensure_valid_id(value, "connection")
    assert exc_info.value.kind == ErrorKind.INVALID_INPUT
    assert exc_info.value.message == "Invalid connection ID format"


def test_ensure_valid_id_lowercases():
    assert ensure_valid_id("507F1F77BCF86CD799439011") == "507f1f77bcf86cd799439011"


def test_canonical_pair_ignores_direction():
    a, b = "507f1f77bcf86cd799439011", "507f1f77bcf86cd799439012"
    assert canonical_pair(a, b) == canonical_pair(b, a) == (a, b)
