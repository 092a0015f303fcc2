"""
Record identifiers.

Identifiers are 24-character lowercase hex strings: four bytes of
big-endian epoch seconds followed by eight random bytes.
"""
import os
import re
import time
from typing import Any

from devconnect.core.errors import InvalidInputError

ID_LENGTH = 24

_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")


def generate_id() -> str:
    """Generate a new identifier."""
    timestamp = int(time.time()) & 0xFFFFFFFF
    return timestamp.to_bytes(4, "big").hex() + os.urandom(8).hex()


def is_valid_id(value: Any) -> bool:
    return isinstance(value, str) and bool(_ID_PATTERN.match(value))


def ensure_valid_id(value: Any, label: str = "user") -> str:
    """Return ``value`` lowercased if it is a well-formed identifier, else raise InvalidInputError."""
    if not is_valid_id(value):
        raise InvalidInputError(f"Invalid {label} ID format")
    return value.lower()
