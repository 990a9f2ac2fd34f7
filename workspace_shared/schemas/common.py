from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field

class MemberRole(str, Enum):
    OWNER = "owner"
    MEMBER = "member"

class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"

# Terminal states are write-once
INVITATION_TRANSITIONS: dict["InvitationStatus", list["InvitationStatus"]] = {
    InvitationStatus.PENDING: [
        InvitationStatus.ACCEPTED,
        InvitationStatus.REJECTED,
        InvitationStatus.EXPIRED,
    ],
    InvitationStatus.ACCEPTED: [],
    InvitationStatus.REJECTED: [],
    InvitationStatus.EXPIRED: [],
}

class NotificationType(str, Enum):
    INVITATION = "invitation"
    INVITATION_ACCEPTED = "invitation_accepted"
    INVITATION_REJECTED = "invitation_rejected"
    JOIN_REQUEST = "join_request"
    JOIN_ACCEPTED = "join_accepted"
    JOIN_REJECTED = "join_rejected"
    ORGANIZATION_DELETED = "organization_deleted"

class VerificationKind(str, Enum):
    EMAIL_VERIFICATION = "email-verification"
    PASSWORD_RESET = "password-reset"

class JoinRequestAction(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"

class ApiSuccess(BaseModel):
    success: bool = True
    data: Optional[Any] = None
    message: Optional[str] = None

class ApiFailure(BaseModel):
    success: bool = False
    error: str
    error_code: Optional[str] = Field(default=None, serialization_alias="errorCode")
    message: Optional[str] = None
    details: Optional[Any] = None
