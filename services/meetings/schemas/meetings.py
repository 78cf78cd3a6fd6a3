"""
Pydantic schemas for meeting operations.

Request models are validated once at the HTTP boundary; the scheduling core
receives them already typed. Response models read straight from the ORM
entities via ``from_attributes`` and never expose a stored meeting password
unless the field is explicitly part of an organizer-only response.
"""

from datetime import date, datetime, timezone
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
    model_validator,
)

from services.meetings.models.meeting import (
    MeetingStatus,
    MeetingType,
    ParticipantKind,
    ParticipantRole,
    ParticipantStatus,
    RecurrenceType,
)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Naive datetimes are taken to be UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class RegisteredInvitee(BaseModel):
    """A participant with a user account."""

    kind: Literal["registered"] = "registered"
    user_id: int = Field(..., gt=0)
    role: ParticipantRole = ParticipantRole.attendee


class GuestInvitee(BaseModel):
    """A participant known only by email and display name."""

    kind: Literal["guest"] = "guest"
    email: EmailStr
    name: Optional[str] = Field(None, max_length=100)
    role: ParticipantRole = ParticipantRole.attendee


Invitee = Annotated[Union[RegisteredInvitee, GuestInvitee], Field(discriminator="kind")]


class MeetingBase(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    start_time: datetime
    end_time: datetime
    timezone: str = Field("UTC", max_length=50)
    location: Optional[str] = Field(None, max_length=255)
    meeting_link: Optional[str] = Field(None, max_length=500)
    meeting_type: MeetingType = MeetingType.group
    max_participants: Optional[int] = Field(None, ge=1, le=1000)
    is_recurring: bool = False
    recurrence_type: Optional[RecurrenceType] = RecurrenceType.none
    recurrence_end_date: Optional[datetime] = None

    @field_validator("start_time", "end_time", "recurrence_end_date")
    @classmethod
    def normalize_to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)


class MeetingCreate(MeetingBase):
    """Schema for creating a meeting."""

    channel_name: Optional[str] = Field(
        None, max_length=100, description="Custom provider channel name"
    )
    generate_channel: bool = Field(
        True, description="Generate a channel name when no custom name is given"
    )
    password: Optional[str] = Field(None, description="Custom meeting password")
    generate_password: bool = Field(
        False, description="Generate a password when no custom one is given"
    )
    allow_guest_access: bool = True
    participants: List[Invitee] = Field(default_factory=list)


class MeetingUpdate(BaseModel):
    """Partial update; only fields present in the request are applied."""

    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    timezone: Optional[str] = Field(None, max_length=50)
    location: Optional[str] = Field(None, max_length=255)
    meeting_link: Optional[str] = Field(None, max_length=500)
    meeting_type: Optional[MeetingType] = None
    max_participants: Optional[int] = Field(None, ge=1, le=1000)
    channel_name: Optional[str] = Field(None, max_length=100)
    allow_guest_access: Optional[bool] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)


class AddParticipantsRequest(BaseModel):
    participants: List[Invitee] = Field(..., min_length=1)


RESPONSE_STATUSES = (
    ParticipantStatus.accepted,
    ParticipantStatus.declined,
    ParticipantStatus.tentative,
)


class ParticipantResponseUpdate(BaseModel):
    status: ParticipantStatus
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("status")
    @classmethod
    def validate_response_status(cls, v: ParticipantStatus) -> ParticipantStatus:
        if v not in RESPONSE_STATUSES:
            raise ValueError("Status must be one of: accepted, declined, tentative")
        return v


class MeetingPasswordUpdate(BaseModel):
    """Exactly one of ``new_password`` or ``remove_password`` must be given."""

    new_password: Optional[str] = Field(None, min_length=4, max_length=50)
    remove_password: bool = False

    @model_validator(mode="after")
    def validate_one_action(self) -> "MeetingPasswordUpdate":
        if self.new_password and self.remove_password:
            raise ValueError("Cannot provide both new_password and remove_password")
        if not self.new_password and not self.remove_password:
            raise ValueError("Either new_password or remove_password must be provided")
        return self


class MeetingFilters(BaseModel):
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: Optional[MeetingStatus] = None
    meeting_type: Optional[MeetingType] = None
    organizer_id: Optional[int] = None
    participant_id: Optional[int] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)


class AccessRequest(BaseModel):
    password: Optional[str] = None


class ParticipantResponse(BaseModel):
    id: int
    meeting_id: int
    user_id: Optional[int] = None
    email: Optional[str] = None
    name: Optional[str] = None
    kind: ParticipantKind
    status: ParticipantStatus
    role: ParticipantRole
    joined_at: Optional[datetime] = None
    left_at: Optional[datetime] = None
    response_date: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MeetingResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    timezone: str
    location: Optional[str] = None
    meeting_link: Optional[str] = None
    meeting_type: MeetingType
    # Derived from the clock, so a past meeting reads "completed"
    status: MeetingStatus = Field(
        validation_alias=AliasChoices("current_status", "status")
    )
    max_participants: Optional[int] = None
    is_recurring: bool
    recurrence_type: Optional[RecurrenceType] = None
    recurrence_end_date: Optional[datetime] = None
    organizer_id: int
    channel_name: Optional[str] = None
    provider_app_id: Optional[str] = None
    is_password_protected: bool
    allow_guest_access: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ResponseStats(BaseModel):
    total: int = 0
    accepted: int = 0
    declined: int = 0
    tentative: int = 0
    invited: int = 0
    no_response: int = 0


class MeetingDetailResponse(BaseModel):
    meeting: MeetingResponse
    participants: List[ParticipantResponse]
    participation: Optional[ParticipantResponse] = None
    is_organizer: bool
    response_stats: ResponseStats


class MeetingListResponse(BaseModel):
    meetings: List[MeetingResponse]
    total: int


class CalendarOverviewResponse(BaseModel):
    year: int
    month: int
    days: Dict[str, List[MeetingResponse]]
    total: int


class ConflictSummary(BaseModel):
    id: int
    title: str
    start_time: datetime
    end_time: datetime

    model_config = ConfigDict(from_attributes=True)


class TimeSlotResponse(BaseModel):
    start: datetime
    end: datetime
    available: bool
    conflicts: List[ConflictSummary] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class AvailabilityResponse(BaseModel):
    date: date
    duration_minutes: int
    timezone: str
    slots: List[TimeSlotResponse]


class JoinInfo(BaseModel):
    meeting_id: int
    channel_name: Optional[str] = None
    provider_app_id: Optional[str] = None
    requires_password: bool
    allow_guest_access: bool


class AccessResponse(BaseModel):
    can_join: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    join_info: Optional[JoinInfo] = None


class JoinResponse(BaseModel):
    meeting_id: int
    title: str
    start_time: datetime
    end_time: datetime
    join_info: JoinInfo
    join_token: str
    expires_in: int


class PasswordUpdateResponse(BaseModel):
    meeting_id: int
    is_password_protected: bool
    # Returned to the organizer only
    password: Optional[str] = None
    message: str


class ShareLinkResponse(BaseModel):
    share_link: str
    meeting_id: int
    title: str
    requires_password: bool
    password: Optional[str] = None


class InvitationResponse(BaseModel):
    meeting_id: int
    title: str
    start_time: datetime
    end_time: datetime
    timezone: str
    join_link: str
    password: Optional[str] = None
    instructions: List[str]
