from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from devconnect.db.models import RelationshipStatus
from devconnect.users.schemas import PublicProfile


class RelationshipRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    from_user_id: str
    to_user_id: str
    status: RelationshipStatus
    created_at: datetime
    updated_at: datetime


class ConnectionView(RelationshipRecord):
    """A relationship record with both parties' public profiles attached."""
    from_user: Optional[PublicProfile] = None
    to_user: Optional[PublicProfile] = None

    def counterpart(self, user_id: str) -> Optional[PublicProfile]:
        return self.to_user if self.from_user_id == user_id else self.from_user


class ConnectionStatusView(BaseModel):
    """How a relationship looks from one party's side. ``status`` is None when there is none."""
    status: Optional[RelationshipStatus] = None
    relationship_id: Optional[str] = None
    message: str
