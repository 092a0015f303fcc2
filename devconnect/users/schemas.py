from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PublicProfile(BaseModel):
    """The counterpart fields shown next to a relationship record."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    first_name: str
    last_name: str
    profile_photo: Optional[str] = None


class UserSuggestion(PublicProfile):
    """A candidate for a new connection. Carries no secrets or timestamps."""
    email: str
    age: Optional[int] = None
    gender: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    bio: Optional[str] = None
    current_position: Optional[str] = None
    current_organisation: Optional[str] = None
    location: Optional[str] = None
    github_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    portfolio_url: Optional[str] = None


class UserProfile(UserSuggestion):
    """Everything about a user except the password hash."""
    mobile_number: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class NewUser(BaseModel):
    """Registration input. The password arrives already hashed."""
    first_name: str = Field(min_length=2, max_length=50)
    last_name: str = Field(min_length=2, max_length=50)
    username: str = Field(min_length=3, max_length=30)
    email: str = Field(max_length=254)
    password_hash: str = Field(min_length=1)
    mobile_number: Optional[str] = Field(default=None, pattern=r"^[0-9]{10}$")
    age: Optional[int] = Field(default=None, ge=18, le=100)
    gender: Optional[str] = None
