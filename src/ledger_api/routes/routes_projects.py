"""
Project API Routes

Project list (with archive toggle), project detail, and project create/update/delete/archive.
"""

from uuid import UUID

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Query
from fastapi import status

from ledger_api.dependencies import get_current_user
from ledger_api.dependencies import get_gateway
from ledger_api.gateway import LedgerGateway
from ledger_api.ledger.editors import ProjectForm
from ledger_api.ledger.enums import SortKey
from ledger_api.ledger.enums import StatusFilter
from ledger_api.ledger.models import CurrentUser
from ledger_api.schemas.schemas import MessageResponse
from ledger_api.schemas.schemas import ProjectDetailResponse
from ledger_api.schemas.schemas import ProjectListResponse
from ledger_api.schemas.schemas import ProjectResponse
from ledger_api.services import projects as project_service

ROUTER_PROJECTS = APIRouter(tags=["Projects"], dependencies=[Depends(get_current_user)])


@ROUTER_PROJECTS.get(
    "/projects",
    response_model=ProjectListResponse,
    summary="List projects with their financial metrics",
)
async def list_projects(
    show_archived: bool = Query(False, alias="showArchived", description="List archived projects instead"),
    gateway: LedgerGateway = Depends(get_gateway),
):
    """
    List active (or archived) projects.

    Before listing, every project's archived flag is reset to `status == "completed"`.
    """
    projects = await project_service.list_projects(gateway, show_archived=show_archived)
    return ProjectListResponse(
        Message=f"Found {len(projects)} project(s)",
        Count=len(projects),
        ShowArchived=show_archived,
        Projects=projects,
    )


@ROUTER_PROJECTS.post(
    "/projects",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a project",
    responses={422: {"description": "Project name missing"}},
)
async def create_project(
    form: ProjectForm,
    gateway: LedgerGateway = Depends(get_gateway),
    user: CurrentUser = Depends(get_current_user),
):
    project = await project_service.create_project(gateway, form, user)
    return ProjectResponse(Message="Project created successfully", Project=project)


@ROUTER_PROJECTS.get(
    "/projects/{project_id}",
    response_model=ProjectDetailResponse,
    summary="Project detail with contractor rollups",
    responses={404: {"description": "Project not found"}},
)
async def get_project_detail(
    project_id: UUID,
    search: str = Query("", description="Substring matched against contractor name, email and phone"),
    status_filter: StatusFilter = Query(StatusFilter.ALL, alias="status"),
    sort_by: SortKey = Query(SortKey.NAME, alias="sortBy"),
    gateway: LedgerGateway = Depends(get_gateway),
):
    detail = await project_service.load_project_detail(gateway, project_id, search, status_filter, sort_by)
    return ProjectDetailResponse(Message="Project loaded successfully", Detail=detail)


@ROUTER_PROJECTS.put(
    "/projects/{project_id}",
    response_model=ProjectResponse,
    summary="Update a project",
    responses={404: {"description": "Project not found"}, 422: {"description": "Project name missing"}},
)
async def update_project(
    project_id: UUID,
    form: ProjectForm,
    gateway: LedgerGateway = Depends(get_gateway),
):
    project = await project_service.update_project(gateway, project_id, form)
    return ProjectResponse(Message="Project updated successfully", Project=project)


@ROUTER_PROJECTS.delete(
    "/projects/{project_id}",
    response_model=MessageResponse,
    summary="Delete a project",
    responses={404: {"description": "Project not found"}},
)
async def delete_project(project_id: UUID, gateway: LedgerGateway = Depends(get_gateway)):
    await project_service.delete_project(gateway, project_id)
    return MessageResponse(Message="Project deleted successfully")


@ROUTER_PROJECTS.post(
    "/projects/{project_id}/archive",
    response_model=ProjectResponse,
    summary="Archive a project",
)
async def archive_project(project_id: UUID, gateway: LedgerGateway = Depends(get_gateway)):
    project = await project_service.set_project_archived(gateway, project_id, archived=True)
    return ProjectResponse(Message="Project archived successfully", Project=project)


@ROUTER_PROJECTS.post(
    "/projects/{project_id}/unarchive",
    response_model=ProjectResponse,
    summary="Unarchive a project",
)
async def unarchive_project(project_id: UUID, gateway: LedgerGateway = Depends(get_gateway)):
    project = await project_service.set_project_archived(gateway, project_id, archived=False)
    return ProjectResponse(Message="Project unarchived successfully", Project=project)
