"""
API tests for the admin dashboard, issue moderation and user management.
"""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from civicpoll.services import users as user_service


class TestStats:
    @pytest.mark.asyncio
    async def test_dashboard(self, async_client, conn, admin_headers):
        conn.fetchrow.return_value = {
            "total_issues": 12,
            "total_users": 40,
            "total_polls": 3,
            "total_votes": 95,
            "recent_issues": 4,
        }
        conn.fetch.side_effect = [
            [{"status": "submitted", "count": 5}, {"status": "in progress", "count": 2}, {"status": "resolved", "count": 5}],
            [{"status": "active", "count": 2}, {"status": "closed", "count": 1}],
        ]

        response = await async_client.get("/api/admin/stats", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["overview"]["total_votes"] == 95
        assert data["overview"]["active_issues"] == 7
        assert data["issues_by_status"]["under review"] == 0
        assert data["polls_by_status"] == {"draft": 0, "active": 2, "closed": 1}

    @pytest.mark.asyncio
    async def test_issue_stats(self, async_client, conn, admin_headers):
        conn.fetchrow.return_value = {
            "total_issues": 3,
            "total_upvotes": 10,
            "total_views": 31,
            "total_comments": 2,
        }
        conn.fetch.return_value = [{"category": "Health", "count": 2}, {"category": "Security", "count": 1}]

        response = await async_client.get("/api/admin/stats/issues", headers=admin_headers)

        data = response.json()["data"]
        assert data["average_upvotes"] == 3.3
        assert data["average_views"] == 10.3
        assert data["by_category"] == {"Health": 2, "Security": 1}

    @pytest.mark.asyncio
    async def test_requires_admin(self, async_client, voter_headers):
        response = await async_client.get("/api/admin/stats/issues", headers=voter_headers)
        assert response.status_code == 403


class TestIssueModeration:
    @pytest.mark.asyncio
    async def test_list_sorted_by_upvotes(self, async_client, conn, admin_headers):
        response = await async_client.get(
            "/api/admin/issues?status=submitted&sort=most_upvoted", headers=admin_headers
        )

        assert response.status_code == 200
        query, *params = conn.fetch.call_args.args
        assert query.rstrip().endswith("ORDER BY i.upvotes_count DESC, i.created_at DESC")
        assert params == ["submitted"]

    @pytest.mark.asyncio
    async def test_unknown_sort(self, async_client, admin_headers):
        response = await async_client.get("/api/admin/issues?sort=loudest", headers=admin_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_resolve_issue(self, async_client, conn, admin_headers):
        conn.fetchrow.return_value = {"id": uuid4(), "status": "resolved"}

        response = await async_client.put(
            f"/api/admin/issues/{uuid4()}/status", headers=admin_headers, json={"status": "resolved"}
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Issue status updated to resolved"
        assert "resolved_at = CASE" in conn.fetchrow.call_args.args[0]

    @pytest.mark.asyncio
    async def test_invalid_issue_status(self, async_client, conn, admin_headers):
        response = await async_client.put(
            f"/api/admin/issues/{uuid4()}/status", headers=admin_headers, json={"status": "done"}
        )

        assert response.status_code == 400
        conn.fetchrow.assert_not_called()

    @pytest.mark.asyncio
    async def test_respond_to_issue(self, async_client, conn, admin, admin_headers):
        conn.fetchrow.return_value = {"id": uuid4(), "admin_response": "Crew dispatched"}

        response = await async_client.put(
            f"/api/admin/issues/{uuid4()}/response",
            headers=admin_headers,
            json={"response": "Crew dispatched"},
        )

        assert response.status_code == 200
        assert conn.fetchrow.call_args.args[2] == admin["id"]

    @pytest.mark.asyncio
    async def test_priority_on_missing_issue(self, async_client, admin_headers):
        response = await async_client.put(
            f"/api/admin/issues/{uuid4()}/priority", headers=admin_headers, json={"priority": "high"}
        )

        assert response.status_code == 404
        assert response.json()["error"] == "Issue not found"


class TestUserManagement:
    @pytest.mark.asyncio
    async def test_list_users_paginated(self, async_client, conn, admin_headers):
        conn.fetchval.return_value = 42
        conn.fetch.return_value = [{"id": uuid4(), "full_name": "Otieno", "role": "voter"}]

        response = await async_client.get("/api/admin/users?limit=10&offset=20", headers=admin_headers)

        data = response.json()["data"]
        assert data["total"] == 42
        assert data["limit"] == 10
        assert data["offset"] == 20
        assert conn.fetch.call_args.args[-2:] == (10, 20)

    @pytest.mark.asyncio
    async def test_role_change_needs_super_admin(self, async_client, admin_headers):
        response = await async_client.put(
            f"/api/admin/users/{uuid4()}/role", headers=admin_headers, json={"role": "admin"}
        )

        assert response.status_code == 403
        assert response.json()["error"] == "Super admin access required"

    @pytest.mark.asyncio
    async def test_super_admin_promotes_user(self, async_client, super_admin_headers):
        user_id = uuid4()
        with patch.object(
            user_service, "set_user_role", AsyncMock(return_value={"id": str(user_id), "role": "admin"})
        ) as set_role:
            response = await async_client.put(
                f"/api/admin/users/{user_id}/role", headers=super_admin_headers, json={"role": "admin"}
            )

        assert response.status_code == 200
        assert response.json()["data"]["role"] == "admin"
        assert set_role.await_args.args[1:] == (user_id, "admin")

    @pytest.mark.asyncio
    async def test_unknown_role(self, async_client, super_admin_headers):
        response = await async_client.put(
            f"/api/admin/users/{uuid4()}/role", headers=super_admin_headers, json={"role": "king"}
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_suspend_user(self, async_client, conn, admin_headers):
        user_id = uuid4()
        conn.fetchrow.return_value = {"id": user_id, "status": "suspended"}

        response = await async_client.put(
            f"/api/admin/users/{user_id}/status", headers=admin_headers, json={"status": "suspended"}
        )

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "suspended"

    @pytest.mark.asyncio
    async def test_cannot_change_own_status(self, async_client, conn, admin, admin_headers):
        response = await async_client.put(
            f"/api/admin/users/{admin['id']}/status", headers=admin_headers, json={"status": "suspended"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "You cannot change your own account status"
        conn.fetchrow.assert_not_called()

    @pytest.mark.asyncio
    async def test_status_for_missing_user(self, async_client, admin_headers):
        response = await async_client.put(
            f"/api/admin/users/{uuid4()}/status", headers=admin_headers, json={"status": "active"}
        )
        assert response.status_code == 404
