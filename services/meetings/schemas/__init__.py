"""
Meetings service schemas.
"""

from services.meetings.schemas.meetings import (
    AccessRequest,
    AccessResponse,
    AddParticipantsRequest,
    AvailabilityResponse,
    CalendarOverviewResponse,
    ConflictSummary,
    GuestInvitee,
    InvitationResponse,
    Invitee,
    JoinInfo,
    JoinResponse,
    MeetingCreate,
    MeetingDetailResponse,
    MeetingFilters,
    MeetingListResponse,
    MeetingPasswordUpdate,
    MeetingResponse,
    MeetingUpdate,
    ParticipantResponse,
    ParticipantResponseUpdate,
    PasswordUpdateResponse,
    RegisteredInvitee,
    ResponseStats,
    ShareLinkResponse,
    TimeSlotResponse,
)
from services.meetings.schemas.users import (
    TokenResponse,
    UserLogin,
    UserRegister,
    UserResponse,
    UserUpdate,
)

__all__ = [
    "AccessRequest",
    "AccessResponse",
    "AddParticipantsRequest",
    "AvailabilityResponse",
    "CalendarOverviewResponse",
    "ConflictSummary",
    "GuestInvitee",
    "InvitationResponse",
    "Invitee",
    "JoinInfo",
    "JoinResponse",
    "MeetingCreate",
    "MeetingDetailResponse",
    "MeetingFilters",
    "MeetingListResponse",
    "MeetingPasswordUpdate",
    "MeetingResponse",
    "MeetingUpdate",
    "ParticipantResponse",
    "ParticipantResponseUpdate",
    "PasswordUpdateResponse",
    "RegisteredInvitee",
    "ResponseStats",
    "ShareLinkResponse",
    "TimeSlotResponse",
    "TokenResponse",
    "UserLogin",
    "UserRegister",
    "UserResponse",
    "UserUpdate",
]
