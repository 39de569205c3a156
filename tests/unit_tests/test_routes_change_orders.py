"""Tests for change order endpoints."""

from uuid import uuid4


class TestCreateChangeOrder:
    """Tests for POST /api/projects/{project_id}/contractors/{contractor_id}/change-orders."""

    def test_create(self, client, mock_gateway, make_project, make_contractor, make_change_order):
        project, contractor = make_project(), make_contractor()
        mock_gateway.projects.get.return_value = project
        mock_gateway.contractors.get.return_value = contractor
        mock_gateway.change_orders.create.return_value = make_change_order(
            project.id, contractor.id, project_amount=-1200, contractor_amount=-1000
        )

        response = client.post(
            f"/api/projects/{project.id}/contractors/{contractor.id}/change-orders",
            json={"description": "Scope reduction", "project_amount": "-1,200", "contractor_amount": -1000},
        )

        assert response.status_code == 201
        assert response.json()["Message"] == "Change order created successfully"
        project_id, contractor_id, patch = mock_gateway.change_orders.create.call_args.args
        assert (project_id, contractor_id) == (project.id, contractor.id)
        assert patch.project_amount == -1200
        assert patch.contractor_amount == -1000
        assert patch.status == "pending"

    def test_unparsable_amount_is_zero(self, client, mock_gateway, make_project, make_contractor, make_change_order):
        project, contractor = make_project(), make_contractor()
        mock_gateway.projects.get.return_value = project
        mock_gateway.contractors.get.return_value = contractor
        mock_gateway.change_orders.create.return_value = make_change_order(project.id, contractor.id)

        response = client.post(
            f"/api/projects/{project.id}/contractors/{contractor.id}/change-orders",
            json={"description": "Extra outlets", "project_amount": "abc"},
        )

        assert response.status_code == 201
        patch = mock_gateway.change_orders.create.call_args.args[2]
        assert patch.project_amount == 0
        assert patch.contractor_amount == 0

    def test_description_required(self, client, mock_gateway, make_project, make_contractor):
        mock_gateway.projects.get.return_value = make_project()
        mock_gateway.contractors.get.return_value = make_contractor()

        response = client.post(
            f"/api/projects/{uuid4()}/contractors/{uuid4()}/change-orders", json={"project_amount": 100}
        )

        assert response.status_code == 422
        assert response.json()["detail"] == "Change order description is required"
        mock_gateway.change_orders.create.assert_not_awaited()

    def test_project_not_found(self, client, mock_gateway):
        response = client.post(
            f"/api/projects/{uuid4()}/contractors/{uuid4()}/change-orders", json={"description": "Extra"}
        )

        assert response.status_code == 404
        assert response.json()["detail"] == "Project not found"


class TestUpdateDeleteChangeOrder:
    """Tests for PUT and DELETE /api/change-orders/{change_order_id}."""

    def test_update(self, client, mock_gateway, make_change_order):
        existing = make_change_order(uuid4(), uuid4(), project_amount=100, contractor_amount=80)
        mock_gateway.change_orders.get.return_value = existing
        mock_gateway.change_orders.update_from_patch.return_value = existing

        response = client.put(
            f"/api/change-orders/{existing.id}",
            json={"description": "Extra fixtures", "project_amount": 150, "contractor_amount": 90, "status": "approved"},
        )

        assert response.status_code == 200
        assert response.json()["Message"] == "Change order updated successfully"
        patch = mock_gateway.change_orders.update_from_patch.call_args.args[1]
        assert patch.status == "approved"
        assert patch.project_amount == 150

    def test_update_missing(self, client):
        response = client.put(f"/api/change-orders/{uuid4()}", json={"description": "Extra"})

        assert response.status_code == 404
        assert response.json()["detail"] == "Change order not found"

    def test_delete(self, client, mock_gateway):
        change_order_id = uuid4()

        response = client.delete(f"/api/change-orders/{change_order_id}")

        assert response.status_code == 200
        assert response.json() == {"Message": "Change order deleted successfully"}
        mock_gateway.change_orders.delete.assert_awaited_once_with(change_order_id)

    def test_delete_missing(self, client, mock_gateway):
        mock_gateway.change_orders.delete.return_value = False

        response = client.delete(f"/api/change-orders/{uuid4()}")

        assert response.status_code == 404
