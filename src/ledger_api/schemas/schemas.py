"""
Ledger API Request/Response Schemas

Response models use PascalCase fields and carry the domain models they report on.
Entity create/update bodies are the editor forms themselves (ProjectForm, ContractorForm, ...).
"""

from datetime import datetime
from typing import List
from typing import Literal
from typing import Optional
from uuid import UUID

from email_validator import EmailNotValidError
from email_validator import validate_email
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import field_validator

from ledger_api.ledger.models import ChangeOrder
from ledger_api.ledger.models import Contractor
from ledger_api.ledger.models import Invoice
from ledger_api.ledger.models import Project
from ledger_api.ledger.models import ProjectMember
from ledger_api.notifications.invitation_email import InvitationRecord
from ledger_api.services.contractors import ContractorDetail
from ledger_api.services.projects import ProjectDetail
from ledger_api.services.projects import ProjectSummary

# ════════════════════════════════════════════════════════════════════════════
# Generic
# ════════════════════════════════════════════════════════════════════════════


class MessageResponse(BaseModel):
    """Response for deletes and other calls without a payload."""

    Message: str


# ════════════════════════════════════════════════════════════════════════════
# Project Schemas
# ════════════════════════════════════════════════════════════════════════════


class ProjectListResponse(BaseModel):
    Message: str
    Count: int
    ShowArchived: bool
    Projects: List[ProjectSummary]


class ProjectResponse(BaseModel):
    Message: str
    Project: Project


class ProjectDetailResponse(BaseModel):
    """Project page: metrics, filtered/sorted contractors, change orders, invoices, over-billing alerts."""

    Message: str
    Detail: ProjectDetail


# ════════════════════════════════════════════════════════════════════════════
# Contractor, Change Order and Invoice Schemas
# ════════════════════════════════════════════════════════════════════════════


class ContractorResponse(BaseModel):
    Message: str
    Contractor: Contractor


class ContractorDetailResponse(BaseModel):
    Message: str
    Detail: ContractorDetail


class ChangeOrderResponse(BaseModel):
    Message: str
    ChangeOrder: ChangeOrder


class InvoiceResponse(BaseModel):
    Message: str
    Invoice: Invoice


class InvoiceIngestionResponse(BaseModel):
    """Result of the AI invoice upload."""

    Message: str
    InvoiceNumber: str
    Amount: float
    VendorName: str
    Description: str
    ContractorCreated: bool
    Invoice: Invoice


# ════════════════════════════════════════════════════════════════════════════
# Member and Invitation Schemas
# ════════════════════════════════════════════════════════════════════════════


class MembersResponse(BaseModel):
    Message: str
    IsOwner: bool
    Members: List[ProjectMember]


class InviteRequest(BaseModel):
    """Invite a user by email."""

    email: str
    role: Literal["member", "contractor"] = "member"

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={"example": {"email": "colleague@example.com", "role": "member"}},
    )

    @field_validator("email")
    @classmethod
    def validate_email_address(cls, v):
        """Validate the address but keep it as typed; the join step compares it case-sensitively."""
        try:
            validate_email(v, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValueError(f"value is not a valid email address: {e}") from e
        return v


class InviteResponse(BaseModel):
    Message: str
    InvitationId: UUID
    JoinLink: str
    ExpiresAt: datetime
    Created: bool  # False when a pending invitation was reused
    EmailSent: bool


class InvitationWebhookRequest(BaseModel):
    """Row-insert webhook body of project_invitations."""

    record: InvitationRecord

    model_config = ConfigDict(extra="ignore")


class NotificationResponse(BaseModel):
    success: bool
    message: str


# ════════════════════════════════════════════════════════════════════════════
# Session Schemas
# ════════════════════════════════════════════════════════════════════════════


class SessionResponse(BaseModel):
    """Session state of the caller and the route-guard decision for `Path`."""

    Authenticated: bool
    UserId: Optional[UUID] = None
    Email: Optional[str] = None
    Path: str
    Allowed: bool
    RedirectTo: Optional[str] = None
