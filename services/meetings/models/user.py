"""
User model for the Meetings Service.

Users are created at registration and soft-disabled through ``is_active``;
the scheduling core never hard-deletes them.
"""

import enum

from sqlalchemy import Boolean, Column, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from services.meetings.models.base import Base, UTCDateTime, utcnow


class UserRole(str, enum.Enum):
    user = "user"
    admin = "admin"


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(30), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    bio = Column(Text)
    role: Mapped[UserRole] = mapped_column(Enum(UserRole), default=UserRole.user)
    is_active = Column(Boolean, nullable=False, default=True)
    last_login = Column(UTCDateTime)
    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    organized_meetings = relationship("Meeting", back_populates="organizer")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
