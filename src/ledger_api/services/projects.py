"""
Project Views

Project list and project detail: each call loads the full record set it needs from the gateway and
recomputes the rollups, so a mutation followed by a reload always reflects the row store.
"""

from typing import List
from uuid import UUID

from loguru import logger
from pydantic import BaseModel

from ledger_api.errors import GatewayError
from ledger_api.errors import NotFoundError
from ledger_api.gateway import LedgerGateway
from ledger_api.ledger.compensation import CompensatingActions
from ledger_api.ledger.editors import ProjectEditor
from ledger_api.ledger.editors import ProjectForm
from ledger_api.ledger.enums import MemberRole
from ledger_api.ledger.enums import SortKey
from ledger_api.ledger.enums import StatusFilter
from ledger_api.ledger.listing import ContractorRollup
from ledger_api.ledger.listing import OverBilledAlert
from ledger_api.ledger.listing import filter_and_sort_contractors
from ledger_api.ledger.listing import find_over_billed_contractors
from ledger_api.ledger.listing import rollup_contractors
from ledger_api.ledger.models import ChangeOrder
from ledger_api.ledger.models import CurrentUser
from ledger_api.ledger.models import Invoice
from ledger_api.ledger.models import Project
from ledger_api.ledger.patches import ProjectPatch
from ledger_api.ledger.rollup import ProjectMetrics
from ledger_api.ledger.rollup import calculate_project_metrics

MSG_PROJECT_NOT_FOUND = "Project not found"


class ProjectSummary(BaseModel):
    project: Project
    metrics: ProjectMetrics


class ProjectDetail(BaseModel):
    """Everything the project page shows, with the contractor list already filtered and sorted."""

    project: Project
    metrics: ProjectMetrics
    contractors: List[ContractorRollup]
    contractor_count: int
    change_orders: List[ChangeOrder]
    invoices: List[Invoice]
    over_billed: List[OverBilledAlert]


async def get_project_or_404(gateway: LedgerGateway, project_id: UUID) -> Project:
    project = await gateway.projects.get(project_id)
    if project is None:
        raise NotFoundError(MSG_PROJECT_NOT_FOUND)
    return project


async def list_projects(gateway: LedgerGateway, show_archived: bool = False) -> List[ProjectSummary]:
    """
    Project list with per-project metrics.

    The archived flag is first resynchronised with the status (completed <=> archived), so a
    manual archive of a project that is not completed is undone on the next load.
    """
    changed = await gateway.projects.resync_archived()
    if changed:
        logger.info("Archived flag resynchronised", projects_changed=changed)

    projects = await gateway.projects.list_by_archived(show_archived)
    change_orders = await gateway.change_orders.list_all()
    invoices = await gateway.invoices.list_all()

    return [
        ProjectSummary(project=project, metrics=calculate_project_metrics(project, change_orders, invoices))
        for project in projects
    ]


async def load_project_detail(
    gateway: LedgerGateway,
    project_id: UUID,
    search_term: str = "",
    status_filter: StatusFilter = StatusFilter.ALL,
    sort_by: SortKey = SortKey.NAME,
) -> ProjectDetail:
    project = await get_project_or_404(gateway, project_id)
    contractors = await gateway.contractors.list_for_project(project_id)
    change_orders = await gateway.change_orders.list_for_project(project_id)
    invoices = await gateway.invoices.list_for_project(project_id)

    rollups = rollup_contractors(contractors, change_orders, invoices, project_id=project_id)

    return ProjectDetail(
        project=project,
        metrics=calculate_project_metrics(project, change_orders, invoices),
        contractors=filter_and_sort_contractors(rollups, search_term, status_filter, sort_by),
        contractor_count=len(contractors),
        change_orders=change_orders,
        invoices=invoices,
        over_billed=find_over_billed_contractors(rollups, invoices),
    )


async def create_project(gateway: LedgerGateway, form: ProjectForm, user: CurrentUser) -> Project:
    """
    Create a project owned by `user`.

    The creator is recorded as the project's owner member; if that insert fails the project row is
    deleted again.
    """

    async def save(patch: ProjectPatch) -> Project:
        async with CompensatingActions("create project") as undo:
            project = await gateway.projects.create(patch, user_id=user.id)
            undo.add("delete project", lambda: gateway.projects.delete(project.id))
            await gateway.members.add(project_id=project.id, user_id=user.id, role=MemberRole.OWNER.value)
        return project

    project = await ProjectEditor(form=form).submit(save)
    logger.success("Project created", project_id=project.id, user_id=user.id)
    return project


async def update_project(gateway: LedgerGateway, project_id: UUID, form: ProjectForm) -> Project:
    existing = await get_project_or_404(gateway, project_id)

    async def save(patch: ProjectPatch) -> Project:
        updated = await gateway.projects.update_from_patch(project_id, patch)
        if updated is None:
            raise NotFoundError(MSG_PROJECT_NOT_FOUND)
        return updated

    project = await ProjectEditor(existing, form=form).submit(save)
    logger.info("Project updated", project_id=project_id)
    return project


async def delete_project(gateway: LedgerGateway, project_id: UUID) -> None:
    if not await gateway.projects.delete(project_id):
        raise NotFoundError(MSG_PROJECT_NOT_FOUND)
    logger.info("Project deleted", project_id=project_id)


async def set_project_archived(gateway: LedgerGateway, project_id: UUID, archived: bool) -> Project:
    """Archive or unarchive one project."""
    action = "archive" if archived else "unarchive"
    try:
        project = await gateway.projects.set_archived(project_id, archived)
    except GatewayError as e:
        raise GatewayError(f"Failed to {action} project. Please try again.") from e

    if project is None:
        raise NotFoundError(MSG_PROJECT_NOT_FOUND)
    logger.info(f"Project {action}d", project_id=project_id)
    return project
