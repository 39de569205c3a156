"""Fixtures building ledger rows the way the gateway returns them."""

from datetime import datetime
from datetime import timedelta
from datetime import timezone
from uuid import uuid4

import pytest

from ledger_api.ledger.models import ChangeOrder
from ledger_api.ledger.models import Contractor
from ledger_api.ledger.models import Invoice
from ledger_api.ledger.models import Project
from ledger_api.ledger.models import ProjectInvitation
from ledger_api.ledger.models import ProjectMember

CREATED_AT = datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_project():
    """Factory for Project rows."""

    def _make(name="Harbor View Renovation", contract_value=100000.0, status="active", archived=False, **kwargs):
        return Project(
            id=kwargs.pop("id", uuid4()),
            name=name,
            contract_value=contract_value,
            status=status,
            archived=archived,
            created_at=kwargs.pop("created_at", CREATED_AT),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_contractor():
    """Factory for Contractor rows."""

    def _make(name="Acme Plumbing", contract_value=20000.0, **kwargs):
        return Contractor(
            id=kwargs.pop("id", uuid4()),
            name=name,
            contract_value=contract_value,
            created_at=kwargs.pop("created_at", CREATED_AT),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_change_order():
    """Factory for ChangeOrder rows; project and contractor ids are required."""

    def _make(project_id, contractor_id, project_amount=0.0, contractor_amount=0.0, **kwargs):
        return ChangeOrder(
            id=kwargs.pop("id", uuid4()),
            project_id=project_id,
            contractor_id=contractor_id,
            description=kwargs.pop("description", "Extra fixtures"),
            project_amount=project_amount,
            contractor_amount=contractor_amount,
            created_at=kwargs.pop("created_at", CREATED_AT),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_invoice():
    """Factory for Invoice rows; a negative amount is a credit."""

    def _make(project_id, contractor_id, amount=0.0, invoice_number="INV-1", **kwargs):
        return Invoice(
            id=kwargs.pop("id", uuid4()),
            project_id=project_id,
            contractor_id=contractor_id,
            invoice_number=invoice_number,
            description=kwargs.pop("description", "Progress billing"),
            amount=amount,
            created_at=kwargs.pop("created_at", CREATED_AT),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_member():
    """Factory for ProjectMember rows."""

    def _make(project_id, user_id=None, role="member", email="member@example.com", **kwargs):
        return ProjectMember(
            id=kwargs.pop("id", uuid4()),
            project_id=project_id,
            user_id=user_id or uuid4(),
            role=role,
            email=email,
            created_at=kwargs.pop("created_at", CREATED_AT),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_invitation():
    """Factory for ProjectInvitation rows; pending for a week unless told otherwise."""

    def _make(project_id, email="invitee@example.com", role="member", accepted=False, expires_at=None, **kwargs):
        return ProjectInvitation(
            id=kwargs.pop("id", uuid4()),
            project_id=project_id,
            email=email,
            role=role,
            token=kwargs.pop("token", str(uuid4())),
            accepted=accepted,
            expires_at=expires_at or datetime.now(timezone.utc) + timedelta(days=7),
            created_at=kwargs.pop("created_at", CREATED_AT),
            **kwargs,
        )

    return _make
