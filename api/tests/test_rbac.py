"""
Tests for workspace RBAC and board visibility.

Roles:
- OWNER: full access, including deleting the workspace; cannot be changed or removed
- ADMIN: manage members, invites and boards
- MEMBER: PUBLIC boards, plus PRIVATE boards they were added to
"""
from uuid import uuid4

from fastapi.testclient import TestClient
from sqlalchemy import select

from nexus.models import BoardMember, Membership, Role, Workspace


class TestWorkspaces:
    """Workspace CRUD."""

    def test_create_makes_caller_owner(self, client: TestClient, auth_headers, db, test_user):
        response = client.post("/v1/workspaces", headers=auth_headers, json={"name": "Acme Corp"})

        assert response.status_code == 201
        workspace_id = response.json()["id"]

        listing = client.get("/v1/workspaces", headers=auth_headers).json()
        assert [(w["id"], w["role"]) for w in listing] == [(workspace_id, "OWNER")]

    def test_name_too_short(self, client: TestClient, auth_headers):
        response = client.post("/v1/workspaces", headers=auth_headers, json={"name": "ab"})
        assert response.status_code == 422

    def test_outsider_cannot_read(self, client: TestClient, test_workspace, outsider):
        _, headers = outsider
        response = client.get(f"/v1/workspaces/{test_workspace.id}", headers=headers)

        assert response.status_code == 403
        assert response.json()["detail"] == "You do not have access to this workspace."

    def test_unknown_workspace_is_forbidden(self, client: TestClient, auth_headers):
        """Missing and foreign workspaces look the same."""
        response = client.get(f"/v1/workspaces/{uuid4()}", headers=auth_headers)
        assert response.status_code == 403

    def test_member_cannot_rename(self, client: TestClient, test_workspace, member_user):
        _, headers = member_user
        response = client.patch(
            f"/v1/workspaces/{test_workspace.id}", headers=headers, json={"name": "Renamed"}
        )
        assert response.status_code == 403

    def test_admin_can_rename(self, client: TestClient, test_workspace, admin_user):
        _, headers = admin_user
        response = client.patch(
            f"/v1/workspaces/{test_workspace.id}", headers=headers, json={"name": "Renamed"}
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Renamed"

    def test_only_owner_can_delete(self, client: TestClient, test_workspace, admin_user, auth_headers, db):
        workspace_id = test_workspace.id
        _, admin_headers = admin_user
        denied = client.delete(f"/v1/workspaces/{workspace_id}", headers=admin_headers)
        assert denied.status_code == 403

        response = client.delete(f"/v1/workspaces/{workspace_id}", headers=auth_headers)
        assert response.status_code == 204

        db.expire_all()
        assert db.get(Workspace, workspace_id) is None
        assert db.execute(
            select(Membership).where(Membership.workspace_id == workspace_id)
        ).scalars().all() == []


class TestMembers:
    """Role changes and removals."""

    def test_any_member_can_list(self, client: TestClient, test_workspace, member_user):
        _, headers = member_user
        response = client.get(f"/v1/workspaces/{test_workspace.id}/members", headers=headers)

        assert response.status_code == 200
        assert sorted(m["role"] for m in response.json()) == ["MEMBER", "OWNER"]

    def test_owner_cannot_be_removed(self, client: TestClient, test_workspace, admin_user, owner_membership):
        _, headers = admin_user
        response = client.delete(
            f"/v1/workspaces/{test_workspace.id}/members/{owner_membership.id}", headers=headers
        )
        assert response.status_code == 403

    def test_owner_role_cannot_be_changed(self, client: TestClient, test_workspace, auth_headers, owner_membership):
        response = client.patch(
            f"/v1/workspaces/{test_workspace.id}/members/{owner_membership.id}",
            headers=auth_headers,
            json={"role": "ADMIN"},
        )
        assert response.status_code == 403

    def test_cannot_promote_to_owner(self, client: TestClient, test_workspace, auth_headers, member_user, db):
        user, _ = member_user
        membership = db.execute(
            select(Membership).where(Membership.user_id == user.id)
        ).scalar_one()

        response = client.patch(
            f"/v1/workspaces/{test_workspace.id}/members/{membership.id}",
            headers=auth_headers,
            json={"role": "OWNER"},
        )
        assert response.status_code == 403

    def test_admin_promotes_member(self, client: TestClient, test_workspace, admin_user, member_user, db):
        _, headers = admin_user
        user, _ = member_user
        membership = db.execute(
            select(Membership).where(Membership.user_id == user.id)
        ).scalar_one()

        response = client.patch(
            f"/v1/workspaces/{test_workspace.id}/members/{membership.id}",
            headers=headers,
            json={"role": "ADMIN"},
        )

        assert response.status_code == 200
        assert response.json()["role"] == "ADMIN"

    def test_member_cannot_manage_members(self, client: TestClient, test_workspace, member_user, admin_user, db):
        admin, _ = admin_user
        _, headers = member_user
        membership = db.execute(
            select(Membership).where(Membership.user_id == admin.id)
        ).scalar_one()

        response = client.delete(
            f"/v1/workspaces/{test_workspace.id}/members/{membership.id}", headers=headers
        )
        assert response.status_code == 403

    def test_removed_member_loses_access(
        self, client: TestClient, test_workspace, auth_headers, member_user, private_board, board_grant, db
    ):
        user, headers = member_user
        board_grant(private_board, user)
        membership = db.execute(
            select(Membership).where(Membership.user_id == user.id)
        ).scalar_one()

        response = client.delete(
            f"/v1/workspaces/{test_workspace.id}/members/{membership.id}", headers=auth_headers
        )
        assert response.status_code == 204

        # Same token, but the role is always read from the database
        after = client.get(f"/v1/workspaces/{test_workspace.id}/boards", headers=headers)
        assert after.status_code == 403

        db.expire_all()
        assert db.execute(
            select(BoardMember).where(BoardMember.user_id == user.id)
        ).scalars().all() == []

    def test_membership_of_other_workspace_not_found(self, client: TestClient, test_workspace, auth_headers, db, user_factory):
        other_owner = user_factory("Other Owner")
        other = Workspace(name="Other Workspace")
        db.add(other)
        db.flush()
        foreign = Membership(workspace_id=other.id, user_id=other_owner.id, role=Role.MEMBER.value)
        db.add(foreign)
        db.commit()

        response = client.delete(
            f"/v1/workspaces/{test_workspace.id}/members/{foreign.id}", headers=auth_headers
        )
        assert response.status_code == 404


class TestBoardVisibility:
    """PUBLIC vs PRIVATE boards."""

    def test_board_created_with_default_lists(self, client: TestClient, test_workspace, auth_headers):
        response = client.post(
            f"/v1/workspaces/{test_workspace.id}/boards",
            headers=auth_headers,
            json={"name": "Roadmap", "visibility": "PRIVATE"},
        )

        assert response.status_code == 201
        lists = response.json()["lists"]
        assert [(l["name"], l["position"]) for l in lists] == [
            ("To Do", 1), ("In Progress", 2), ("In Review", 3), ("Done", 4),
        ]

    def test_member_cannot_create_board(self, client: TestClient, test_workspace, member_user):
        _, headers = member_user
        response = client.post(
            f"/v1/workspaces/{test_workspace.id}/boards",
            headers=headers,
            json={"name": "Roadmap"},
        )
        assert response.status_code == 403

    def test_member_sees_public_boards_only(self, client: TestClient, test_workspace, member_user, public_board, private_board):
        _, headers = member_user
        response = client.get(f"/v1/workspaces/{test_workspace.id}/boards", headers=headers)

        assert response.status_code == 200
        assert [b["id"] for b in response.json()] == [str(public_board.id)]

    def test_admin_sees_all_boards(self, client: TestClient, test_workspace, admin_user, public_board, private_board):
        _, headers = admin_user
        response = client.get(f"/v1/workspaces/{test_workspace.id}/boards", headers=headers)

        assert {b["id"] for b in response.json()} == {str(public_board.id), str(private_board.id)}

    def test_private_board_forbidden_without_grant(self, client: TestClient, test_workspace, member_user, private_board):
        _, headers = member_user
        response = client.get(
            f"/v1/workspaces/{test_workspace.id}/boards/{private_board.id}", headers=headers
        )
        assert response.status_code == 403

    def test_granted_member_sees_private_board(
        self, client: TestClient, test_workspace, auth_headers, member_user, private_board
    ):
        user, headers = member_user
        grant = client.post(
            f"/v1/workspaces/{test_workspace.id}/boards/{private_board.id}/members",
            headers=auth_headers,
            json={"user_id": str(user.id)},
        )
        assert grant.status_code == 201

        listing = client.get(f"/v1/workspaces/{test_workspace.id}/boards", headers=headers)
        assert [b["id"] for b in listing.json()] == [str(private_board.id)]

        detail = client.get(
            f"/v1/workspaces/{test_workspace.id}/boards/{private_board.id}", headers=headers
        )
        assert detail.status_code == 200

        duplicate = client.post(
            f"/v1/workspaces/{test_workspace.id}/boards/{private_board.id}/members",
            headers=auth_headers,
            json={"user_id": str(user.id)},
        )
        assert duplicate.status_code == 409

    def test_cannot_add_members_to_public_board(self, client: TestClient, test_workspace, auth_headers, member_user, public_board):
        user, _ = member_user
        response = client.post(
            f"/v1/workspaces/{test_workspace.id}/boards/{public_board.id}/members",
            headers=auth_headers,
            json={"user_id": str(user.id)},
        )
        assert response.status_code == 400

    def test_cannot_add_outsider_to_board(self, client: TestClient, test_workspace, auth_headers, outsider, private_board):
        user, _ = outsider
        response = client.post(
            f"/v1/workspaces/{test_workspace.id}/boards/{private_board.id}/members",
            headers=auth_headers,
            json={"user_id": str(user.id)},
        )
        assert response.status_code == 403

    def test_remove_missing_board_member(self, client: TestClient, test_workspace, auth_headers, member_user, private_board):
        user, _ = member_user
        response = client.delete(
            f"/v1/workspaces/{test_workspace.id}/boards/{private_board.id}/members/{user.id}",
            headers=auth_headers,
        )
        assert response.status_code == 404

    def test_board_of_other_workspace_not_found(self, client: TestClient, auth_headers, test_user, test_workspace, db):
        other = client.post("/v1/workspaces", headers=auth_headers, json={"name": "Second Space"}).json()
        board = client.post(
            f"/v1/workspaces/{other['id']}/boards", headers=auth_headers, json={"name": "Elsewhere"}
        ).json()

        response = client.get(
            f"/v1/workspaces/{test_workspace.id}/boards/{board['id']}", headers=auth_headers
        )
        assert response.status_code == 404


class TestLists:
    """List reordering."""

    def test_reorder_lists(self, client: TestClient, test_workspace, member_user, public_board):
        _, headers = member_user
        lists = public_board.lists
        payload = {"lists": [
            {"id": str(lists[0].id), "position": 4},
            {"id": str(lists[3].id), "position": 1},
        ]}

        response = client.patch(
            f"/v1/workspaces/{test_workspace.id}/boards/{public_board.id}/lists/reorder",
            headers=headers,
            json=payload,
        )

        assert response.status_code == 200
        assert [l["name"] for l in response.json()] == ["Done", "In Progress", "In Review", "To Do"]

    def test_reorder_rejects_foreign_list(self, client: TestClient, test_workspace, auth_headers, public_board, private_board):
        payload = {"lists": [
            {"id": str(public_board.lists[0].id), "position": 2},
            {"id": str(private_board.lists[0].id), "position": 1},
        ]}

        response = client.patch(
            f"/v1/workspaces/{test_workspace.id}/boards/{public_board.id}/lists/reorder",
            headers=auth_headers,
            json=payload,
        )
        assert response.status_code == 400

    def test_reorder_rejects_negative_position(self, client: TestClient, test_workspace, auth_headers, public_board):
        payload = {"lists": [{"id": str(public_board.lists[0].id), "position": -1}]}

        response = client.patch(
            f"/v1/workspaces/{test_workspace.id}/boards/{public_board.id}/lists/reorder",
            headers=auth_headers,
            json=payload,
        )
        assert response.status_code == 422
