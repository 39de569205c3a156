"""
Ledger Patches

Partial updates handed by the editors to the gateway. Each patch names exactly the columns its
editor manages; unknown keys are rejected.
"""

from datetime import date
from typing import Any
from typing import Dict
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict


class Patch(BaseModel):
    model_config = ConfigDict(extra="forbid")

    def to_fields(self) -> Dict[str, Any]:
        """Columns to write, skipping those left unset."""
        return self.model_dump(exclude_unset=True)


class ProjectPatch(Patch):
    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    contract_value: Optional[float] = None
    archived: Optional[bool] = None


class ContractorPatch(Patch):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    description: Optional[str] = None
    contract_value: Optional[float] = None


class ChangeOrderPatch(Patch):
    description: Optional[str] = None
    project_amount: Optional[float] = None
    contractor_amount: Optional[float] = None
    status: Optional[str] = None


class InvoicePatch(Patch):
    invoice_number: Optional[str] = None
    description: Optional[str] = None
    amount: Optional[float] = None
    file_url: Optional[str] = None
    status: Optional[str] = None
    due_date: Optional[date] = None
