"""
Contractor API Routes

Contractors are created inside a project (and linked to it), edited and deleted globally, and
removed from a project by deleting the link only.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter
from fastapi import Depends
from fastapi import File
from fastapi import UploadFile
from fastapi import status

from ledger_api.dependencies import get_current_user
from ledger_api.dependencies import get_gateway
from ledger_api.dependencies import get_settings
from ledger_api.dependencies import get_storage
from ledger_api.gateway import LedgerGateway
from ledger_api.ledger.editors import ContractorForm
from ledger_api.ledger.editors import InvoiceForm
from ledger_api.ledger.models import CurrentUser
from ledger_api.routes.routes_invoices import invoice_form
from ledger_api.routes.routes_invoices import read_attachment
from ledger_api.schemas.schemas import ContractorDetailResponse
from ledger_api.schemas.schemas import ContractorResponse
from ledger_api.schemas.schemas import InvoiceResponse
from ledger_api.schemas.schemas import MessageResponse
from ledger_api.services import contractors as contractor_service
from ledger_api.settings import Settings
from ledger_api.storage.object_storage import ObjectStorageClient

ROUTER_CONTRACTORS = APIRouter(tags=["Contractors"], dependencies=[Depends(get_current_user)])


@ROUTER_CONTRACTORS.post(
    "/projects/{project_id}/contractors",
    response_model=ContractorResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a contractor and add it to the project",
    responses={
        404: {"description": "Project not found"},
        409: {"description": "A contractor with this email already exists"},
        422: {"description": "Contractor name missing"},
    },
)
async def add_contractor(
    project_id: UUID,
    form: ContractorForm,
    gateway: LedgerGateway = Depends(get_gateway),
    user: CurrentUser = Depends(get_current_user),
):
    contractor = await contractor_service.add_contractor_to_project(gateway, project_id, form, user)
    return ContractorResponse(Message="Contractor added successfully", Contractor=contractor)


@ROUTER_CONTRACTORS.delete(
    "/projects/{project_id}/contractors/{contractor_id}",
    response_model=MessageResponse,
    summary="Remove a contractor from the project",
    description="Deletes the project/contractor link; the contractor, its change orders and invoices are kept.",
)
async def remove_contractor(project_id: UUID, contractor_id: UUID, gateway: LedgerGateway = Depends(get_gateway)):
    await contractor_service.remove_contractor_from_project(gateway, project_id, contractor_id)
    return MessageResponse(Message="Contractor removed from project")


@ROUTER_CONTRACTORS.get(
    "/contractors/{contractor_id}",
    response_model=ContractorDetailResponse,
    summary="Contractor detail across all projects",
    responses={404: {"description": "Contractor not found"}},
)
async def get_contractor_detail(contractor_id: UUID, gateway: LedgerGateway = Depends(get_gateway)):
    detail = await contractor_service.load_contractor_detail(gateway, contractor_id)
    return ContractorDetailResponse(Message="Contractor loaded successfully", Detail=detail)


@ROUTER_CONTRACTORS.put(
    "/contractors/{contractor_id}",
    response_model=ContractorResponse,
    summary="Update a contractor",
    responses={404: {"description": "Contractor not found"}, 409: {"description": "Email already used"}},
)
async def update_contractor(
    contractor_id: UUID,
    form: ContractorForm,
    gateway: LedgerGateway = Depends(get_gateway),
):
    contractor = await contractor_service.update_contractor(gateway, contractor_id, form)
    return ContractorResponse(Message="Contractor updated successfully", Contractor=contractor)


@ROUTER_CONTRACTORS.delete(
    "/contractors/{contractor_id}",
    response_model=MessageResponse,
    summary="Delete a contractor",
)
async def delete_contractor(contractor_id: UUID, gateway: LedgerGateway = Depends(get_gateway)):
    await contractor_service.delete_contractor(gateway, contractor_id)
    return MessageResponse(Message="Contractor deleted successfully")


@ROUTER_CONTRACTORS.post(
    "/contractors/{contractor_id}/invoices",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add an invoice from the contractor page",
    description="The invoice is booked against the first project the contractor belongs to.",
    responses={422: {"description": "No project found for this invoice"}},
)
async def add_contractor_invoice(
    contractor_id: UUID,
    form: InvoiceForm = Depends(invoice_form),
    file: Optional[UploadFile] = File(None, description="PDF or image attachment"),
    gateway: LedgerGateway = Depends(get_gateway),
    storage: Optional[ObjectStorageClient] = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    form.to_patch()
    attachment = await read_attachment(file, settings)
    invoice = await contractor_service.add_invoice_for_contractor(
        gateway,
        contractor_id,
        form,
        due_days=settings.invoice_due_days,
        attachment=attachment,
        storage=storage,
    )
    return InvoiceResponse(Message="Invoice added successfully", Invoice=invoice)
