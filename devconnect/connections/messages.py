from devconnect.db.models import RelationshipStatus

SELF_REQUEST = "Cannot send connection request to yourself"
SELF_BLOCK = "Cannot block yourself"
SELF_UNBLOCK = "Cannot unblock yourself"

REQUEST_ALREADY_SENT = "Connection request already sent"
REQUEST_ALREADY_RECEIVED = "User has already sent you a request. Please accept/reject it first"
ALREADY_CONNECTED = "Already connected"
ALREADY_BLOCKED = "User is already blocked"
PAIR_ALREADY_EXISTS = "A relationship between these users already exists"

BLOCKED_ACTION = "Cannot perform this action"
BLOCKED_TRANSITION = "Cannot perform action due to block status"
NOT_AUTHORIZED = "Forbidden - You are not authorized to perform this action"

REQUEST_NOT_FOUND = "Connection request not found"
BLOCK_NOT_FOUND = "No blocked connection found"

STATUS_SELF = "Cannot check connection with yourself"
STATUS_NONE = "No connection exists"


def wrong_status(verb: str, status: RelationshipStatus) -> str:
    return f"Cannot {verb} connection with status: {status.value}"


def status_message(status: RelationshipStatus, initiated_by_caller: bool) -> str:
    """Human-readable status, worded from the caller's side of the record."""
    if status == RelationshipStatus.PENDING:
        return "Connection request sent" if initiated_by_caller else "Connection request received"
    if status == RelationshipStatus.BLOCKED:
        return "User blocked" if initiated_by_caller else "Blocked by user"
    if status == RelationshipStatus.ACCEPTED:
        return "Connected"
    return "Connection request rejected"
