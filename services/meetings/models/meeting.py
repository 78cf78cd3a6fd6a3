import enum
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import (
    Boolean,
    Column,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from services.meetings.models.base import Base, UTCDateTime, utcnow


class MeetingType(str, enum.Enum):
    one_on_one = "one_on_one"
    group = "group"
    presentation = "presentation"
    workshop = "workshop"
    other = "other"


class MeetingStatus(str, enum.Enum):
    scheduled = "scheduled"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


class RecurrenceType(str, enum.Enum):
    none = "none"
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"


class ParticipantStatus(str, enum.Enum):
    invited = "invited"
    accepted = "accepted"
    declined = "declined"
    tentative = "tentative"
    no_response = "no_response"


class ParticipantRole(str, enum.Enum):
    organizer = "organizer"
    presenter = "presenter"
    attendee = "attendee"
    optional = "optional"


class ParticipantKind(str, enum.Enum):
    registered = "registered"
    guest = "guest"


# Display/sort order for participant lists
ROLE_ORDER = {
    ParticipantRole.organizer: 0,
    ParticipantRole.presenter: 1,
    ParticipantRole.attendee: 2,
    ParticipantRole.optional: 3,
}


class Meeting(Base):
    __tablename__ = "meetings"
    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)
    timezone = Column(String(50), nullable=False, default="UTC")
    location = Column(String(255))
    meeting_link = Column(String(500))
    meeting_type: Mapped[MeetingType] = mapped_column(
        Enum(MeetingType), default=MeetingType.group
    )
    status: Mapped[MeetingStatus] = mapped_column(
        Enum(MeetingStatus), default=MeetingStatus.scheduled
    )
    max_participants = Column(Integer)
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurrence_type: Mapped[Optional[RecurrenceType]] = mapped_column(
        Enum(RecurrenceType), default=RecurrenceType.none, nullable=True
    )
    recurrence_end_date = Column(UTCDateTime)
    organizer_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    channel_name = Column(String(100), unique=True)
    provider_app_id = Column(String(100))
    # Stored and compared as plain text; see DESIGN.md
    password = Column(String(50))
    is_password_protected = Column(Boolean, nullable=False, default=False)
    allow_guest_access = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    organizer = relationship("User", back_populates="organized_meetings")
    participants = relationship(
        "MeetingParticipant",
        back_populates="meeting",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_meetings_organizer_id", "organizer_id"),
        Index("ix_meetings_start_time", "start_time"),
        Index("ix_meetings_status", "status"),
        Index("ix_meetings_start_end", "start_time", "end_time"),
    )

    def is_upcoming(self, now: Optional[datetime] = None) -> bool:
        return self.start_time > (now or utcnow())

    def effective_status(self, now: Optional[datetime] = None) -> MeetingStatus:
        """Status as observed at ``now``.

        Cancelled and completed are terminal. Otherwise in-progress and
        completed follow from the clock; the stored value is not rewritten.
        """
        if self.status in (MeetingStatus.cancelled, MeetingStatus.completed):
            return self.status
        now = now or utcnow()
        if now >= self.end_time:
            return MeetingStatus.completed
        if self.start_time <= now:
            return MeetingStatus.in_progress
        return self.status

    @property
    def current_status(self) -> MeetingStatus:
        return self.effective_status()

    def can_be_modified(self, now: Optional[datetime] = None) -> bool:
        return self.status == MeetingStatus.scheduled and self.is_upcoming(now)

    def requires_password(self) -> bool:
        return bool(self.is_password_protected and self.password)

    def check_password(self, candidate: str) -> bool:
        return self.password == candidate

    def join_info(self) -> Dict[str, Any]:
        return {
            "meeting_id": self.id,
            "channel_name": self.channel_name,
            "provider_app_id": self.provider_app_id,
            "requires_password": self.requires_password(),
            "allow_guest_access": bool(self.allow_guest_access),
        }


class MeetingParticipant(Base):
    __tablename__ = "meeting_participants"
    id = Column(Integer, primary_key=True, autoincrement=True)
    meeting_id = Column(
        Integer, ForeignKey("meetings.id", ondelete="CASCADE"), nullable=False
    )
    # NULL for guests who only have an email/name
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    email = Column(String(255))
    name = Column(String(100))
    status: Mapped[ParticipantStatus] = mapped_column(
        Enum(ParticipantStatus), default=ParticipantStatus.invited
    )
    role: Mapped[ParticipantRole] = mapped_column(
        Enum(ParticipantRole), default=ParticipantRole.attendee
    )
    joined_at = Column(UTCDateTime)
    left_at = Column(UTCDateTime)
    response_date = Column(UTCDateTime)
    notes = Column(Text)
    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    meeting = relationship("Meeting", back_populates="participants")

    __table_args__ = (
        UniqueConstraint("meeting_id", "user_id", name="_meeting_user_uc"),
        Index("ix_meeting_participants_user_status", "user_id", "status"),
    )

    @property
    def kind(self) -> ParticipantKind:
        if self.user_id is None:
            return ParticipantKind.guest
        return ParticipantKind.registered
