"""
Entity Editors

Form state for creating and editing ledger entities. A form is seeded from an existing entity
(edit mode) or from defaults (create mode); `to_patch` validates required fields, parses numeric
text and returns a patch holding only the columns the form manages. Editors hand that patch to a
caller-supplied save callback.
"""

import math
from typing import Awaitable
from typing import Callable
from typing import Generic
from typing import Optional
from typing import TypeVar
from typing import Union
from uuid import UUID

from loguru import logger
from pydantic import BaseModel
from pydantic import ConfigDict

from ledger_api.errors import StorageError
from ledger_api.errors import ValidationFailed
from ledger_api.ledger.attachments import build_object_path
from ledger_api.ledger.enums import ChangeOrderStatus
from ledger_api.ledger.enums import ProjectStatus
from ledger_api.ledger.models import ChangeOrder
from ledger_api.ledger.models import Contractor
from ledger_api.ledger.models import Invoice
from ledger_api.ledger.models import Project
from ledger_api.ledger.patches import ChangeOrderPatch
from ledger_api.ledger.patches import ContractorPatch
from ledger_api.ledger.patches import InvoicePatch
from ledger_api.ledger.patches import Patch
from ledger_api.ledger.patches import ProjectPatch

# Numeric form fields arrive as text from forms or as numbers from JSON clients
NumericInput = Union[float, str, None]

INVOICE_ATTACHMENT_NAMESPACE = "invoices"


def parse_amount(raw: NumericInput) -> float:
    """Parse numeric form input; empty, unparsable or non-finite input becomes 0."""
    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        text = raw.strip().replace(",", "")
        if not text:
            return 0.0
        try:
            value = float(text)
        except ValueError:
            return 0.0
    return value if math.isfinite(value) else 0.0


def _required(value: Optional[str], message: str) -> str:
    if value is None or not value.strip():
        raise ValidationFailed(message)
    return value.strip()


class EntityForm(BaseModel):
    model_config = ConfigDict(extra="forbid")

    def to_patch(self) -> Patch:
        raise NotImplementedError


class ProjectForm(EntityForm):
    name: str = ""
    description: str = ""
    status: str = ProjectStatus.PENDING.value
    contract_value: NumericInput = ""

    @classmethod
    def from_entity(cls, project: Optional[Project]) -> "ProjectForm":
        if project is None:
            return cls()
        return cls(
            name=project.name,
            description=project.description or "",
            status=project.status,
            contract_value=project.contract_value,
        )

    def to_patch(self) -> ProjectPatch:
        name = _required(self.name, "Project name is required")
        contract_value = parse_amount(self.contract_value)
        if contract_value < 0:
            raise ValidationFailed("Contract value cannot be negative")
        return ProjectPatch(
            name=name,
            description=self.description,
            status=self.status or ProjectStatus.PENDING.value,
            contract_value=contract_value,
        )


class ContractorForm(EntityForm):
    name: str = ""
    email: str = ""
    phone: str = ""
    description: str = ""
    contract_value: NumericInput = ""

    @classmethod
    def from_entity(cls, contractor: Optional[Contractor]) -> "ContractorForm":
        if contractor is None:
            return cls()
        return cls(
            name=contractor.name,
            email=contractor.email or "",
            phone=contractor.phone or "",
            description=contractor.description or "",
            contract_value=contractor.contract_value,
        )

    def to_patch(self) -> ContractorPatch:
        # blank contact fields are stored as NULL so they never collide on the unique email index
        return ContractorPatch(
            name=_required(self.name, "Contractor name is required"),
            email=self.email.strip() or None,
            phone=self.phone.strip() or None,
            description=self.description,
            contract_value=parse_amount(self.contract_value),
        )


class ChangeOrderForm(EntityForm):
    description: str = ""
    project_amount: NumericInput = ""
    contractor_amount: NumericInput = ""
    status: str = ChangeOrderStatus.PENDING.value

    @classmethod
    def from_entity(cls, change_order: Optional[ChangeOrder]) -> "ChangeOrderForm":
        if change_order is None:
            return cls()
        return cls(
            description=change_order.description,
            project_amount=change_order.project_amount,
            contractor_amount=change_order.contractor_amount,
            status=change_order.status,
        )

    def to_patch(self) -> ChangeOrderPatch:
        return ChangeOrderPatch(
            description=_required(self.description, "Change order description is required"),
            project_amount=parse_amount(self.project_amount),
            contractor_amount=parse_amount(self.contractor_amount),
            status=self.status or ChangeOrderStatus.PENDING.value,
        )


class InvoiceForm(EntityForm):
    """Invoice amounts are entered as a non-negative magnitude plus a credit toggle."""

    invoice_number: str = ""
    description: str = ""
    amount: NumericInput = ""
    is_credit: bool = False

    @classmethod
    def from_entity(cls, invoice: Optional[Invoice]) -> "InvoiceForm":
        if invoice is None:
            return cls()
        amount = float(invoice.amount or 0)
        return cls(
            invoice_number=invoice.invoice_number,
            description=invoice.description or "",
            amount=abs(amount),
            is_credit=amount < 0,
        )

    @property
    def signed_amount(self) -> float:
        magnitude = abs(parse_amount(self.amount))
        return -magnitude if self.is_credit else magnitude

    def to_patch(self) -> InvoicePatch:
        return InvoicePatch(
            invoice_number=_required(self.invoice_number, "Invoice number is required"),
            description=_required(self.description, "Invoice description is required"),
            amount=self.signed_amount,
        )


class Attachment(BaseModel):
    """A file chosen in the invoice editor."""

    filename: str
    content_type: str
    content: bytes


FormT = TypeVar("FormT", bound=EntityForm)
SaveCallback = Callable[[Patch], Awaitable]


class EntityEditor(Generic[FormT]):
    """
    Holds the form of one entity and submits it through a save callback.

    Validation happens before the callback is invoked, so a failed validation never reaches
    the gateway.
    """

    form_class: type

    def __init__(self, entity=None, form: Optional[FormT] = None):
        self.entity = entity
        self.form: FormT = form if form is not None else self.form_class.from_entity(entity)

    @property
    def mode(self) -> str:
        return "edit" if self.entity is not None else "create"

    async def submit(self, on_save: SaveCallback):
        patch = self.form.to_patch()
        return await on_save(patch)


class ProjectEditor(EntityEditor[ProjectForm]):
    form_class = ProjectForm


class ContractorEditor(EntityEditor[ContractorForm]):
    form_class = ContractorForm


class ChangeOrderEditor(EntityEditor[ChangeOrderForm]):
    form_class = ChangeOrderForm


class InvoiceEditor(EntityEditor[InvoiceForm]):
    """Invoice editor with an optional attachment uploaded before the save callback runs."""

    form_class = InvoiceForm

    async def submit(self, on_save: SaveCallback, attachment: Optional[Attachment] = None, storage=None):
        """
        Validate, upload the attachment if one was chosen, then save.

        Args:
            on_save: Receives the InvoicePatch, with file_url set when a file was uploaded
            attachment: Newly chosen file, if any
            storage: ObjectStorageClient used for the upload

        Raises:
            ValidationFailed: required field missing
            StorageError: the upload failed; the save callback is not invoked
        """
        patch = self.form.to_patch()

        if attachment is not None:
            if storage is None:
                raise StorageError("File storage is not configured")
            invoice_id: Optional[UUID] = self.entity.id if self.entity is not None else None
            path = build_object_path(INVOICE_ATTACHMENT_NAMESPACE, invoice_id, attachment.filename)
            file_url = await storage.put(path, attachment.content, attachment.content_type)
            patch.file_url = file_url
            logger.info("Invoice attachment uploaded", path=path, invoice_id=invoice_id)

        return await on_save(patch)
