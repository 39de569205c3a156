"""
Ledger Gateway

Row store access for the ledger: one repository per table, bundled by LedgerGateway.
"""

from ledger_api.gateway.repository_change_order import ChangeOrderRepository
from ledger_api.gateway.repository_contractor import ContractorRepository
from ledger_api.gateway.repository_contractor import ProjectContractorRepository
from ledger_api.gateway.repository_invoice import InvoiceRepository
from ledger_api.gateway.repository_membership import InvitationRepository
from ledger_api.gateway.repository_membership import MemberRepository
from ledger_api.gateway.repository_membership import UserProfileRepository
from ledger_api.gateway.repository_project import ProjectRepository


class LedgerGateway:
    """All repositories of the ledger sharing one connection pool."""

    def __init__(self, pool):
        self.pool = pool
        self.projects = ProjectRepository(pool)
        self.contractors = ContractorRepository(pool)
        self.project_contractors = ProjectContractorRepository(pool)
        self.change_orders = ChangeOrderRepository(pool)
        self.invoices = InvoiceRepository(pool)
        self.members = MemberRepository(pool)
        self.invitations = InvitationRepository(pool)
        self.profiles = UserProfileRepository(pool)


__all__ = ["LedgerGateway"]
