"""
Ledger Models

Rows of the ledger as read back from the row store.
"""

from datetime import date
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


class LedgerModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")


class Project(LedgerModel):
    id: UUID
    name: str
    description: Optional[str] = None
    status: str = "pending"
    contract_value: float = 0
    archived: bool = False
    user_id: Optional[UUID] = None
    created_at: Optional[datetime] = None


class Contractor(LedgerModel):
    id: UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    description: Optional[str] = None
    contract_value: float = 0
    user_id: Optional[UUID] = None
    created_at: Optional[datetime] = None


class ProjectContractor(LedgerModel):
    """Link row between a project and a contractor."""

    id: UUID
    project_id: UUID
    contractor_id: UUID
    created_at: Optional[datetime] = None


class ChangeOrder(LedgerModel):
    """A change order carries two independent amounts: what the owner pays and what the contractor gets."""

    id: UUID
    project_id: UUID
    contractor_id: UUID
    description: str
    project_amount: Optional[float] = 0
    contractor_amount: Optional[float] = 0
    status: str = "pending"
    created_at: Optional[datetime] = None


class Invoice(LedgerModel):
    """An invoice amount is signed; a negative amount is a credit."""

    id: UUID
    project_id: UUID
    contractor_id: UUID
    invoice_number: str
    description: Optional[str] = None
    amount: Optional[float] = 0
    file_url: Optional[str] = None
    status: str = "pending"
    due_date: Optional[date] = None
    created_at: Optional[datetime] = None


class ProjectMember(LedgerModel):
    id: UUID
    project_id: UUID
    user_id: UUID
    role: str
    created_at: Optional[datetime] = None
    email: Optional[str] = None  # joined from user_profiles


class ProjectInvitation(LedgerModel):
    id: UUID
    project_id: UUID
    email: str
    role: str
    token: str
    accepted: bool = False
    expires_at: datetime
    created_at: Optional[datetime] = None


class UserProfile(LedgerModel):
    id: UUID
    email: str
    name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.email


class CurrentUser(BaseModel):
    """Identity of the caller, taken from a verified access token."""

    id: UUID
    email: Optional[str] = None
    claims: dict = Field(default_factory=dict, repr=False)
