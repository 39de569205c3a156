"""Tests for member, invitation and invitation webhook endpoints."""

from uuid import uuid4

import pytest

from ledger_api.errors import GatewayError
from ledger_api.errors import NotificationError
from ledger_api.ledger.models import UserProfile
from ledger_api.services.members import INVITE_SUCCESS_MESSAGE
from tests.fixtures.app_fixtures import TEST_USER_EMAIL
from tests.fixtures.app_fixtures import TEST_USER_ID
from tests.fixtures.app_fixtures import auth_headers


@pytest.fixture
def owned_project(mock_gateway, make_project, make_member):
    """A project owned by the test user, with one other member."""
    project = make_project(name="Harbor View", user_id=TEST_USER_ID)
    owner = make_member(project.id, user_id=TEST_USER_ID, role="owner", email=TEST_USER_EMAIL)
    member = make_member(project.id, role="member", email="member@example.com")
    mock_gateway.projects.get.return_value = project
    mock_gateway.members.list_for_project.return_value = [owner, member]
    mock_gateway.profiles.get.return_value = UserProfile(id=TEST_USER_ID, email=TEST_USER_EMAIL, name="Sam Owner")
    return project, owner, member


class TestListMembers:
    """Tests for GET /api/projects/{project_id}/members."""

    def test_owner_view(self, client, owned_project):
        project, owner, member = owned_project

        response = client.get(f"/api/projects/{project.id}/members")

        assert response.status_code == 200
        data = response.json()
        assert data["Message"] == "Found 2 member(s)"
        assert data["IsOwner"] is True
        assert [m["email"] for m in data["Members"]] == [TEST_USER_EMAIL, "member@example.com"]

    def test_member_view(self, client, mock_gateway, make_project, make_member):
        project = make_project()
        mock_gateway.projects.get.return_value = project
        mock_gateway.members.list_for_project.return_value = [
            make_member(project.id, role="owner"),
            make_member(project.id, user_id=TEST_USER_ID, role="member"),
        ]

        response = client.get(f"/api/projects/{project.id}/members")

        assert response.json()["IsOwner"] is False

    def test_load_failure(self, client, mock_gateway, owned_project):
        project, _, _ = owned_project
        mock_gateway.members.list_for_project.side_effect = GatewayError("timeout")

        response = client.get(f"/api/projects/{project.id}/members")

        assert response.status_code == 502
        assert response.json()["detail"] == "Failed to load project members"


class TestInviteMember:
    """Tests for POST /api/projects/{project_id}/invitations."""

    def test_new_invitation_is_emailed(self, client, mock_gateway, mock_mailer, owned_project, make_invitation):
        project, _, _ = owned_project
        invitation = make_invitation(project.id, email="new@example.com", role="contractor", token="tok-1")
        mock_gateway.invitations.upsert.return_value = invitation

        response = client.post(
            f"/api/projects/{project.id}/invitations", json={"email": "new@example.com", "role": "contractor"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["Message"] == INVITE_SUCCESS_MESSAGE
        assert data["InvitationId"] == str(invitation.id)
        assert data["JoinLink"] == "https://ledger.test/join-project?token=tok-1"
        assert data["Created"] is True
        assert data["EmailSent"] is True
        assert mock_gateway.invitations.upsert.call_args.kwargs["role"] == "contractor"
        email = mock_mailer.send.call_args.args[0]
        assert email.to == "new@example.com"
        assert email.subject == "Invitation to join Harbor View"

    def test_pending_invitation_reused(self, client, mock_gateway, mock_mailer, owned_project, make_invitation):
        project, _, _ = owned_project
        pending = make_invitation(project.id, email="new@example.com", token="tok-old")
        mock_gateway.invitations.find_pending.return_value = pending

        response = client.post(f"/api/projects/{project.id}/invitations", json={"email": "new@example.com"})

        assert response.status_code == 200
        assert response.json()["Created"] is False
        assert response.json()["JoinLink"].endswith("token=tok-old")
        assert response.json()["EmailSent"] is False
        mock_gateway.invitations.upsert.assert_not_awaited()
        mock_mailer.send.assert_not_awaited()

    def test_email_failure_keeps_invitation(self, client, mock_gateway, mock_mailer, owned_project, make_invitation):
        project, _, _ = owned_project
        mock_gateway.invitations.upsert.return_value = make_invitation(project.id, email="new@example.com")
        mock_mailer.send.side_effect = NotificationError("Failed to send email")

        response = client.post(f"/api/projects/{project.id}/invitations", json={"email": "new@example.com"})

        assert response.status_code == 200
        assert response.json()["Created"] is True
        assert response.json()["EmailSent"] is False

    def test_email_stored_as_typed(self, client, mock_gateway, owned_project, make_invitation):
        project, _, _ = owned_project
        mock_gateway.invitations.upsert.return_value = make_invitation(project.id, email="Bob@Example.COM")

        response = client.post(f"/api/projects/{project.id}/invitations", json={"email": "Bob@Example.COM"})

        assert response.status_code == 200
        assert mock_gateway.invitations.find_pending.call_args.args[1] == "Bob@Example.COM"
        assert mock_gateway.invitations.upsert.call_args.kwargs["email"] == "Bob@Example.COM"

    def test_already_member(self, client, mock_gateway, owned_project):
        project, _, _ = owned_project

        response = client.post(f"/api/projects/{project.id}/invitations", json={"email": "member@example.com"})

        assert response.status_code == 400
        assert response.json()["detail"] == "This user is already a member of the project."
        mock_gateway.invitations.upsert.assert_not_awaited()

    def test_only_owner_invites(self, client, mock_gateway, make_project, make_member):
        project = make_project()
        mock_gateway.projects.get.return_value = project
        mock_gateway.members.list_for_project.return_value = [
            make_member(project.id, user_id=TEST_USER_ID, role="member"),
        ]

        response = client.post(f"/api/projects/{project.id}/invitations", json={"email": "new@example.com"})

        assert response.status_code == 403
        assert response.json()["detail"] == "Only project owners can invite members"

    @pytest.mark.parametrize(
        "body",
        [{"email": "not-an-email"}, {"email": "new@example.com", "role": "owner"}],
        ids=["bad_email", "owner_role"],
    )
    def test_invalid_body(self, client, mock_gateway, owned_project, body):
        project, _, _ = owned_project

        response = client.post(f"/api/projects/{project.id}/invitations", json=body)

        assert response.status_code == 422
        mock_gateway.invitations.upsert.assert_not_awaited()


class TestRemoveMember:
    """Tests for DELETE /api/projects/{project_id}/members/{member_id}."""

    def test_owner_removes_member(self, client, mock_gateway, owned_project):
        project, _, member = owned_project

        response = client.delete(f"/api/projects/{project.id}/members/{member.id}")

        assert response.status_code == 200
        assert response.json() == {"Message": "Member removed successfully"}
        mock_gateway.members.delete.assert_awaited_once_with(member.id)

    def test_owner_row_protected(self, client, mock_gateway, owned_project):
        project, owner, _ = owned_project

        response = client.delete(f"/api/projects/{project.id}/members/{owner.id}")

        assert response.status_code == 403
        mock_gateway.members.delete.assert_not_awaited()

    def test_non_owner_rejected(self, client, owned_project):
        project, _, member = owned_project

        response = client.delete(
            f"/api/projects/{project.id}/members/{member.id}",
            headers=auth_headers(user_id=uuid4(), email="member@example.com"),
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "Only project owners can remove members"


class TestInvitationWebhook:
    """Tests for POST /api/notifications/invitation."""

    @pytest.fixture
    def webhook_body(self, owned_project):
        project, _, _ = owned_project
        return {
            "type": "INSERT",
            "table": "project_invitations",
            "record": {"project_id": str(project.id), "email": "new@example.com", "token": "tok-9", "role": "member"},
        }

    def test_requires_signed_token(self, unauthenticated_client, mock_mailer, webhook_body):
        response = unauthenticated_client.post("/api/notifications/invitation", json=webhook_body)

        assert response.status_code == 401
        mock_mailer.send.assert_not_awaited()

    def test_service_token_accepted(self, unauthenticated_client, mock_mailer, webhook_body):
        response = unauthenticated_client.post(
            "/api/notifications/invitation",
            json=webhook_body,
            headers=auth_headers(user_id="service-role", email=None),
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Invitation email sent successfully"}
        email = mock_mailer.send.call_args.args[0]
        assert "https://ledger.test/join-project?token=tok-9" in email.text
        assert "Sam Owner has invited you" in email.text

    def test_project_not_found(self, client, mock_gateway, mock_mailer, webhook_body):
        mock_gateway.projects.get.return_value = None

        response = client.post("/api/notifications/invitation", json=webhook_body)

        assert response.status_code == 400
        assert response.json() == {"error": "Project not found", "details": "NotificationError"}
        mock_mailer.send.assert_not_awaited()
