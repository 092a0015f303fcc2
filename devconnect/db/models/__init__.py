from devconnect.db.models.user import User
from devconnect.db.models.relationship import Relationship, RelationshipStatus, canonical_pair

__all__ = [
    "User",
    "Relationship",
    "RelationshipStatus",
    "canonical_pair",
]
