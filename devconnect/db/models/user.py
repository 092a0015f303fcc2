from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from devconnect.db.base import Base, utcnow
from devconnect.db.identifiers import generate_id, ID_LENGTH


class User(Base):
    """User model for storing identity and profile data."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True, default=generate_id)
    first_name: Mapped[str] = mapped_column(String(50))
    last_name: Mapped[str] = mapped_column(String(50))
    username: Mapped[str] = mapped_column(String(30), unique=True, index=True)
    email: Mapped[str] = mapped_column(String(254), unique=True, index=True)
    mobile_number: Mapped[Optional[str]] = mapped_column(String(10), unique=True, nullable=True)

    # Hashed by the auth collaborator before it reaches us
    password_hash: Mapped[str] = mapped_column(String(255))

    # Optional profile fields
    age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    skills: Mapped[List[str]] = mapped_column(JSON, default=list)
    bio: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    current_position: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    current_organisation: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    profile_photo: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    github_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    linkedin_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    portfolio_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationship records, by direction
    sent_relationships = relationship(
        "Relationship", foreign_keys="Relationship.from_user_id", back_populates="from_user"
    )
    received_relationships = relationship(
        "Relationship", foreign_keys="Relationship.to_user_id", back_populates="to_user"
    )

    def __repr__(self) -> str:
        return f"<User {self.id} ({self.username})>"
