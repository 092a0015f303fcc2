from devconnect.users.directory import UserDirectory
from devconnect.users.schemas import NewUser, PublicProfile, UserProfile, UserSuggestion

__all__ = [
    "UserDirectory",
    "NewUser",
    "PublicProfile",
    "UserProfile",
    "UserSuggestion",
]
