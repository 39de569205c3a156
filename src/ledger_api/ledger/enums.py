"""
Ledger Enums

Enum types shared by the ledger, the gateway and the API.
Statuses stored in the row store are open sets: unknown values read back unchanged, so models keep
them as plain strings and these enums list the values the service itself writes.
"""

from enum import Enum

# ════════════════════════════════════════════════════════════════════════════
# Stored Statuses
# ════════════════════════════════════════════════════════════════════════════


class ProjectStatus(str, Enum):
    """Project lifecycle status."""

    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"  # forces archived=true on the next list load
    ON_HOLD = "on-hold"


class ChangeOrderStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class InvoiceStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


class MemberRole(str, Enum):
    """Role of a user inside a project."""

    OWNER = "owner"
    MEMBER = "member"
    CONTRACTOR = "contractor"


# ════════════════════════════════════════════════════════════════════════════
# Derived Values
# ════════════════════════════════════════════════════════════════════════════


class BudgetStatus(str, Enum):
    """Classification of a contractor's remaining balance."""

    OVER_BUDGET = "over_budget"  # remaining < 0
    COMPLETED = "completed"  # remaining == 0
    ACTIVE = "active"  # remaining > 0


class StatusFilter(str, Enum):
    """Contractor list status filter. OVERDUE selects over-budget contractors."""

    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"
    OVERDUE = "overdue"


class SortKey(str, Enum):
    NAME = "name"
    VALUE = "value"


class ChangeOrderSide(str, Enum):
    """Which change-order amount a rollup adds to the contract value."""

    PROJECT = "project"
    CONTRACTOR = "contractor"


class InvitationState(str, Enum):
    NONE = "none"
    PENDING = "pending"
    EXPIRED = "expired"
    ACCEPTED = "accepted"


class IngestionStep(str, Enum):
    """Steps of the invoice ingestion pipeline, in execution order."""

    UPLOAD = "upload"
    TRANSCRIBE = "transcribe"
    EXTRACT = "extract"
    RESOLVE_CONTRACTOR = "resolve_contractor"
    CREATE_INVOICE = "create_invoice"
