from .base import BaseRepository
from .user import user_repo, UserRepository
from .relationship_repo import relationship_repo, RelationshipRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "RelationshipRepository",
    "user_repo",
    "relationship_repo",
]
