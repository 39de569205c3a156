"""Change order API routes."""

from uuid import UUID

from fastapi import APIRouter
from fastapi import Depends
from fastapi import status

from ledger_api.dependencies import get_current_user
from ledger_api.dependencies import get_gateway
from ledger_api.gateway import LedgerGateway
from ledger_api.ledger.editors import ChangeOrderForm
from ledger_api.schemas.schemas import ChangeOrderResponse
from ledger_api.schemas.schemas import MessageResponse
from ledger_api.services import entries as entry_service

ROUTER_CHANGE_ORDERS = APIRouter(tags=["Change Orders"], dependencies=[Depends(get_current_user)])


@ROUTER_CHANGE_ORDERS.post(
    "/projects/{project_id}/contractors/{contractor_id}/change-orders",
    response_model=ChangeOrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a change order",
    description="Project and contractor amounts are independent; either may be negative.",
    responses={404: {"description": "Project or contractor not found"}, 422: {"description": "Description missing"}},
)
async def create_change_order(
    project_id: UUID,
    contractor_id: UUID,
    form: ChangeOrderForm,
    gateway: LedgerGateway = Depends(get_gateway),
):
    change_order = await entry_service.create_change_order(gateway, project_id, contractor_id, form)
    return ChangeOrderResponse(Message="Change order created successfully", ChangeOrder=change_order)


@ROUTER_CHANGE_ORDERS.put(
    "/change-orders/{change_order_id}",
    response_model=ChangeOrderResponse,
    summary="Update a change order",
    responses={404: {"description": "Change order not found"}},
)
async def update_change_order(
    change_order_id: UUID,
    form: ChangeOrderForm,
    gateway: LedgerGateway = Depends(get_gateway),
):
    change_order = await entry_service.update_change_order(gateway, change_order_id, form)
    return ChangeOrderResponse(Message="Change order updated successfully", ChangeOrder=change_order)


@ROUTER_CHANGE_ORDERS.delete(
    "/change-orders/{change_order_id}",
    response_model=MessageResponse,
    summary="Delete a change order",
)
async def delete_change_order(change_order_id: UUID, gateway: LedgerGateway = Depends(get_gateway)):
    await entry_service.delete_change_order(gateway, change_order_id)
    return MessageResponse(Message="Change order deleted successfully")
