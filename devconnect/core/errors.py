"""
Error taxonomy shared by the user directory and the connection engine.

Every precondition failure is raised as one of the subclasses below. The
``kind`` is stable and meant for the API layer to map onto status codes;
``message`` is human-readable.
"""
from enum import Enum


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"


class DevConnectError(Exception):
    """Base class for domain errors."""

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message}

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.kind.value}: {self.message}>"


class InvalidInputError(DevConnectError):
    """Malformed identifier or self-referential target."""
    kind = ErrorKind.INVALID_INPUT


class NotFoundError(DevConnectError):
    """Referenced user or relationship does not exist."""
    kind = ErrorKind.NOT_FOUND


class ForbiddenError(DevConnectError):
    """Caller holds the wrong role, or a block suppresses the action."""
    kind = ErrorKind.FORBIDDEN


class ConflictError(DevConnectError):
    """Transition is illegal given the current state."""
    kind = ErrorKind.CONFLICT
