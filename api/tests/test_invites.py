"""
Tests for workspace invitations.

Lifecycle: OWNER/ADMIN invites an email -> anyone previews the link ->
the user with that email accepts and becomes a member.
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from nexus.core.errors import AppError, ErrorKind
from nexus.models import Invite, Membership, Role
from nexus.services.invites import create_invite


def invite(client: TestClient, workspace_id, headers: dict, email: str, role: str = "MEMBER"):
    return client.post(
        f"/v1/workspaces/{workspace_id}/members/invite",
        headers=headers,
        json={"email": email, "role": role},
    )


def token_for(db, email: str) -> str:
    db.expire_all()
    return db.execute(select(Invite.token).where(Invite.email == email)).scalar_one()


class TestCreateInvite:

    def test_admin_invites(self, client: TestClient, test_workspace, admin_user, db):
        _, headers = admin_user
        with patch("nexus.core.mailer.send_workspace_invite") as send:
            response = invite(client, test_workspace.id, headers, "New.Person@Example.com")

        assert response.status_code == 201
        assert response.json()["email"] == "new.person@example.com"
        assert response.json()["role"] == "MEMBER"
        send.assert_called_once()

        token = token_for(db, "new.person@example.com")
        assert len(token) == 64
        assert send.call_args.args[1] == token

    def test_member_cannot_invite(self, client: TestClient, test_workspace, member_user):
        _, headers = member_user
        response = invite(client, test_workspace.id, headers, "someone@example.com")
        assert response.status_code == 403

    def test_owner_role_cannot_be_invited(self, client: TestClient, test_workspace, auth_headers):
        response = invite(client, test_workspace.id, auth_headers, "someone@example.com", role="OWNER")
        assert response.status_code == 400

    def test_existing_member_conflicts(self, client: TestClient, test_workspace, auth_headers, member_user):
        user, _ = member_user
        response = invite(client, test_workspace.id, auth_headers, user.email)
        assert response.status_code == 409

    def test_active_invite_conflicts(self, client: TestClient, test_workspace, auth_headers):
        assert invite(client, test_workspace.id, auth_headers, "twice@example.com").status_code == 201
        assert invite(client, test_workspace.id, auth_headers, "twice@example.com").status_code == 409

    def test_expired_invite_is_replaced(self, client: TestClient, test_workspace, auth_headers, db):
        invite(client, test_workspace.id, auth_headers, "again@example.com")
        stale = db.execute(select(Invite).where(Invite.email == "again@example.com")).scalar_one()
        stale.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        db.commit()

        response = invite(client, test_workspace.id, auth_headers, "again@example.com")

        assert response.status_code == 201
        db.expire_all()
        assert len(db.execute(select(Invite).where(Invite.email == "again@example.com")).scalars().all()) == 1

    def test_unique_row_surfaces_as_conflict(self, test_workspace, db):
        """An invite committed by a concurrent request after the pre-check still fails as Conflict."""
        db.add(Invite(
            workspace_id=test_workspace.id,
            email="race@example.com",
            role=Role.MEMBER.value,
            token="r" * 64,
            expires_at=datetime.now(timezone.utc) + timedelta(days=7),
        ))
        db.commit()

        with patch("nexus.services.invites._has_active_invite", return_value=False), \
                pytest.raises(AppError) as exc:
            create_invite(db, test_workspace, "race@example.com", Role.MEMBER)

        assert exc.value.kind is ErrorKind.CONFLICT
        db.expire_all()
        assert len(db.execute(select(Invite)).scalars().all()) == 1

    def test_list_and_revoke(self, client: TestClient, test_workspace, auth_headers, db):
        invite(client, test_workspace.id, auth_headers, "pending@example.com")

        listing = client.get(f"/v1/workspaces/{test_workspace.id}/members/invites", headers=auth_headers)
        assert [i["email"] for i in listing.json()] == ["pending@example.com"]

        invite_id = listing.json()[0]["id"]
        revoke = client.delete(
            f"/v1/workspaces/{test_workspace.id}/members/invites/{invite_id}", headers=auth_headers
        )
        assert revoke.status_code == 204

        again = client.delete(
            f"/v1/workspaces/{test_workspace.id}/members/invites/{invite_id}", headers=auth_headers
        )
        assert again.status_code == 404


class TestAcceptInvite:

    def test_verify_is_public(self, client: TestClient, test_workspace, auth_headers, db):
        invite(client, test_workspace.id, auth_headers, "guest@example.com")
        token = token_for(db, "guest@example.com")

        response = client.get(f"/v1/invites/verify/{token}")

        assert response.status_code == 200
        assert response.json() == {"email": "guest@example.com", "workspace_name": test_workspace.name}

    def test_verify_unknown_token(self, client: TestClient):
        response = client.get(f"/v1/invites/verify/{'0' * 64}")
        assert response.status_code == 404

    def test_accept_creates_membership(self, client: TestClient, test_workspace, auth_headers, outsider, db):
        user, headers = outsider
        invite(client, test_workspace.id, auth_headers, user.email, role="ADMIN")
        token = token_for(db, user.email)

        response = client.post("/v1/invites/accept", headers=headers, json={"token": token})

        assert response.status_code == 200
        assert response.json() == {"workspace_id": str(test_workspace.id), "role": "ADMIN"}

        db.expire_all()
        assert db.execute(select(Invite)).scalars().all() == []
        workspace = client.get(f"/v1/workspaces/{test_workspace.id}", headers=headers)
        assert workspace.status_code == 200

    def test_wrong_user_cannot_accept(self, client: TestClient, test_workspace, auth_headers, outsider, db):
        user, headers = outsider
        invite(client, test_workspace.id, auth_headers, "intended@example.com")
        token = token_for(db, "intended@example.com")

        response = client.post("/v1/invites/accept", headers=headers, json={"token": token})

        assert response.status_code == 403
        db.expire_all()
        assert db.execute(
            select(Membership).where(Membership.user_id == user.id)
        ).scalars().all() == []
        # The invite survives for its real recipient
        assert db.execute(select(Invite)).scalars().all() != []

    def test_expired_invite_cannot_be_accepted(self, client: TestClient, test_workspace, auth_headers, outsider, db):
        user, headers = outsider
        invite(client, test_workspace.id, auth_headers, user.email)
        row = db.execute(select(Invite).where(Invite.email == user.email)).scalar_one()
        row.expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)
        db.commit()

        response = client.post("/v1/invites/accept", headers=headers, json={"token": row.token})
        assert response.status_code == 404

    def test_accept_requires_login(self, client: TestClient):
        response = client.post("/v1/invites/accept", json={"token": "x" * 64})
        assert response.status_code == 401
