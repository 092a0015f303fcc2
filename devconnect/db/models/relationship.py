from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, DateTime, Enum as SAEnum, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from devconnect.db.base import Base, utcnow
from devconnect.db.identifiers import generate_id, ID_LENGTH


class RelationshipStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    BLOCKED = "BLOCKED"


def canonical_pair(user_a: str, user_b: str) -> tuple[str, str]:
    """Order a pair of user ids so both directions map to the same key."""
    return (user_a, user_b) if user_a <= user_b else (user_b, user_a)


class Relationship(Base):
    """
    The single record describing how two users relate.

    ``from_user_id`` is whoever initiated the current status: the requester
    for PENDING/ACCEPTED/REJECTED, the blocker for BLOCKED. The pair columns
    hold the same two ids in sorted order and carry the uniqueness constraint,
    so a record for (A, B) and one for (B, A) cannot coexist.
    """
    __tablename__ = "relationships"
    __table_args__ = (
        UniqueConstraint("pair_low_id", "pair_high_id", name="uq_relationships_pair"),
        CheckConstraint("from_user_id <> to_user_id", name="no_self_relationship"),
        Index("ix_relationships_to_user_status", "to_user_id", "status"),
        Index("ix_relationships_from_user_status", "from_user_id", "status"),
    )

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True, default=generate_id)
    from_user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    to_user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    status: Mapped[RelationshipStatus] = mapped_column(
        SAEnum(RelationshipStatus, name="relationship_status", native_enum=False, length=16),
        default=RelationshipStatus.PENDING,
    )
    pair_low_id: Mapped[str] = mapped_column(String(ID_LENGTH))
    pair_high_id: Mapped[str] = mapped_column(String(ID_LENGTH))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    from_user = relationship("User", foreign_keys=[from_user_id], back_populates="sent_relationships")
    to_user = relationship("User", foreign_keys=[to_user_id], back_populates="received_relationships")

    def __init__(self, **kwargs):
        if "from_user_id" in kwargs and "to_user_id" in kwargs:
            low, high = canonical_pair(kwargs["from_user_id"], kwargs["to_user_id"])
            kwargs.setdefault("pair_low_id", low)
            kwargs.setdefault("pair_high_id", high)
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return f"<Relationship {self.id} {self.from_user_id}->{self.to_user_id} {self.status.value}>"
