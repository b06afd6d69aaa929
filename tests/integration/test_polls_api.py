"""
API tests for poll management, voting and results.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from civicpoll.core.exceptions import AlreadyVoted, InvalidStatusTransition, PollHasVotes
from civicpoll.services import polls as poll_service
from civicpoll.services import voting as voting_service


def poll_payload(**overrides):
    start = datetime.now(UTC) + timedelta(days=1)
    payload = {
        "title": "Nakuru Governor Opinion Poll",
        "description": "Who would you vote for as Governor?",
        "position_id": 2,
        "county_id": 3,
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(days=14)).isoformat(),
        "candidates": [
            {"name": "Amina Wanjiru", "party_id": 1},
            {"name": "Brian Kiprotich", "slogan": "Kazi kwa vijana"},
        ],
    }
    payload.update(overrides)
    return payload


def active_poll_row(**overrides):
    row = {
        "id": uuid4(),
        "title": "Nakuru Governor Opinion Poll",
        "status": "active",
        "start_date": datetime.now(UTC) - timedelta(days=1),
        "end_date": datetime.now(UTC) + timedelta(days=1),
    }
    row.update(overrides)
    return row


class TestCreatePoll:
    @pytest.mark.asyncio
    async def test_admin_creates_draft_poll(self, async_client, conn, admin, admin_headers):
        poll_id = uuid4()
        conn.fetchrow.side_effect = [
            {"id": poll_id, "title": "Nakuru Governor Opinion Poll", "status": "draft"},
            {"id": uuid4(), "name": "Amina Wanjiru"},
            {"id": uuid4(), "name": "Brian Kiprotich"},
        ]

        response = await async_client.post("/api/polls", headers=admin_headers, json=poll_payload())

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["id"] == str(poll_id)
        assert body["data"]["status"] == "draft"
        assert len(body["data"]["candidates"]) == 2

        poll_insert = conn.fetchrow.call_args_list[0]
        assert poll_insert.args[-1] == admin["id"]

    @pytest.mark.asyncio
    async def test_voter_cannot_create(self, async_client, conn, voter_headers):
        response = await async_client.post("/api/polls", headers=voter_headers, json=poll_payload())

        assert response.status_code == 403
        conn.fetchrow.assert_not_called()

    @pytest.mark.asyncio
    async def test_requires_authentication(self, async_client):
        response = await async_client.post("/api/polls", json=poll_payload())
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_inverted_window_rejected(self, async_client, admin_headers):
        start = datetime.now(UTC) + timedelta(days=3)
        payload = poll_payload(
            start_date=start.isoformat(), end_date=(start - timedelta(days=1)).isoformat()
        )

        response = await async_client.post("/api/polls", headers=admin_headers, json=payload)

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Validation failed"
        assert body["details"] == "End date must be after start date"

    @pytest.mark.asyncio
    async def test_single_candidate_rejected(self, async_client, conn, admin_headers):
        payload = poll_payload(candidates=[{"name": "Only One"}])

        response = await async_client.post("/api/polls", headers=admin_headers, json=payload)

        assert response.status_code == 400
        assert "At least 2 candidates" in response.json()["error"]
        conn.fetchrow.assert_not_called()

    @pytest.mark.asyncio
    async def test_creation_rate_limited(self, async_client, conn, admin_headers):
        with patch.object(
            poll_service, "create_poll", AsyncMock(return_value={"id": "p", "candidates": []})
        ), patch("civicpoll.api.routes.polls.poll_creation_rate_limiter") as limiter:
            limiter.hit.return_value = (True, 120)
            response = await async_client.post(
                "/api/polls", headers=admin_headers, json=poll_payload()
            )

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "120"


class TestPollStatus:
    @pytest.mark.asyncio
    async def test_activate(self, async_client, conn, admin_headers):
        poll_id = uuid4()
        draft = {"id": poll_id, "title": "Poll", "status": "draft"}
        conn.fetchrow.side_effect = [draft, {**draft, "status": "active"}]
        conn.fetchval.return_value = 3

        response = await async_client.patch(
            f"/api/polls/{poll_id}/status", headers=admin_headers, json={"status": "active"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["data"]["status"] == "active"
        assert body["message"] == "Poll status updated to active"

    @pytest.mark.asyncio
    async def test_backward_transition_rejected(self, async_client, admin_headers):
        with patch.object(
            poll_service,
            "update_poll_status",
            AsyncMock(side_effect=InvalidStatusTransition("Cannot change poll status from closed to active")),
        ):
            response = await async_client.patch(
                f"/api/polls/{uuid4()}/status", headers=admin_headers, json={"status": "active"}
            )

        assert response.status_code == 400
        assert response.json()["error"] == "Cannot change poll status from closed to active"

    @pytest.mark.asyncio
    async def test_unknown_poll(self, async_client, admin_headers):
        response = await async_client.patch(
            f"/api/polls/{uuid4()}/status", headers=admin_headers, json={"status": "closed"}
        )

        assert response.status_code == 404
        assert response.json()["error"] == "Poll not found"


class TestDeletePoll:
    @pytest.mark.asyncio
    async def test_delete(self, async_client, conn, admin_headers):
        conn.fetchval.side_effect = [True, False]

        response = await async_client.delete(f"/api/polls/{uuid4()}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["message"] == "Poll deleted successfully"

    @pytest.mark.asyncio
    async def test_poll_with_votes_kept(self, async_client, admin_headers):
        with patch.object(poll_service, "delete_poll", AsyncMock(side_effect=PollHasVotes())):
            response = await async_client.delete(f"/api/polls/{uuid4()}", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Cannot delete a poll that has received votes"


class TestListPolls:
    @pytest.mark.asyncio
    async def test_anonymous_listing_hides_drafts(self, async_client, conn):
        response = await async_client.get("/api/polls")

        assert response.status_code == 200
        assert response.json()["data"] == []
        params = conn.fetch.call_args.args[1:]
        assert params == (["active", "closed"],)

    @pytest.mark.asyncio
    async def test_admin_listing_includes_drafts(self, async_client, admin_headers):
        with patch.object(poll_service, "list_polls", AsyncMock(return_value=[])) as list_polls:
            await async_client.get("/api/polls?status=draft", headers=admin_headers)

        assert list_polls.await_args.kwargs["viewer_is_admin"] is True
        assert list_polls.await_args.kwargs["status"] == "draft"

    @pytest.mark.asyncio
    async def test_active_polls_are_public(self, async_client):
        with patch.object(poll_service, "list_polls", AsyncMock(return_value=[])) as list_polls:
            response = await async_client.get("/api/polls/active")

        assert response.status_code == 200
        assert list_polls.await_args.kwargs["status"] == "active"

    @pytest.mark.asyncio
    async def test_poll_detail_with_tallies(self, async_client, conn, voter_headers):
        poll = active_poll_row()
        a, b = str(uuid4()), str(uuid4())
        conn.fetchrow.return_value = poll
        conn.fetch.side_effect = [
            [
                {"id": a, "name": "Amina", "display_order": 0, "is_active": True},
                {"id": b, "name": "Brian", "display_order": 1, "is_active": True},
            ],
            [{"candidate_id": a, "votes": 2}, {"candidate_id": b, "votes": 2}],
        ]
        conn.fetchval.return_value = False

        response = await async_client.get(f"/api/polls/{poll['id']}", headers=voter_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["total_votes"] == 4
        assert data["has_voted"] is False
        assert [c["percentage"] for c in data["candidates"]] == [50.0, 50.0]
        assert [c["rank"] for c in data["candidates"]] == [1, 2]

    @pytest.mark.asyncio
    async def test_draft_detail_hidden_from_voters(self, async_client, conn, voter_headers):
        conn.fetchrow.return_value = active_poll_row(status="draft")

        response = await async_client.get(f"/api/polls/{uuid4()}", headers=voter_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_results(self, async_client):
        results = {
            "poll_id": str(uuid4()),
            "title": "Poll",
            "status": "closed",
            "total_votes": 3,
            "results": [{"id": "b", "vote_count": 2, "rank": 1}, {"id": "a", "vote_count": 1, "rank": 2}],
            "leader": {"id": "b", "vote_count": 2, "rank": 1},
        }
        with patch.object(poll_service, "get_poll_results", AsyncMock(return_value=results)):
            response = await async_client.get(f"/api/polls/{results['poll_id']}/results")

        assert response.status_code == 200
        assert response.json()["data"]["leader"]["id"] == "b"

    @pytest.mark.asyncio
    async def test_malformed_poll_id(self, async_client):
        response = await async_client.get("/api/polls/not-a-uuid")
        assert response.status_code == 400


class TestVoting:
    @pytest.mark.asyncio
    async def test_cast_vote_camel_case_body(self, async_client, conn, voter, voter_headers):
        poll = active_poll_row()
        candidate_id = uuid4()
        vote_id = uuid4()
        conn.fetchrow.side_effect = [
            poll,
            {"is_active": True},
            {"id": vote_id, "poll_id": poll["id"], "created_at": datetime.now(UTC)},
        ]

        response = await async_client.post(
            "/api/polls/vote",
            headers=voter_headers,
            json={"pollId": str(poll["id"]), "candidateId": str(candidate_id)},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["data"]["vote_id"] == str(vote_id)
        assert body["data"]["poll_id"] == str(poll["id"])
        assert body["message"] == "Vote cast successfully"
        insert_params = conn.fetchrow.call_args_list[2].args[1:]
        assert insert_params[1] == voter["id"]

    @pytest.mark.asyncio
    async def test_requires_login(self, async_client):
        response = await async_client.post(
            "/api/polls/vote", json={"poll_id": str(uuid4()), "candidate_id": str(uuid4())}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_duplicate_vote(self, async_client, voter_headers):
        with patch.object(voting_service, "cast_vote", AsyncMock(side_effect=AlreadyVoted())):
            response = await async_client.post(
                "/api/polls/vote",
                headers=voter_headers,
                json={"poll_id": str(uuid4()), "candidate_id": str(uuid4())},
            )

        assert response.status_code == 400
        assert response.json()["error"] == "You have already voted in this poll"

    @pytest.mark.asyncio
    async def test_closed_poll(self, async_client, conn, voter_headers):
        conn.fetchrow.return_value = active_poll_row(status="closed")

        response = await async_client.post(
            "/api/polls/vote",
            headers=voter_headers,
            json={"poll_id": str(uuid4()), "candidate_id": str(uuid4())},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Poll is not active"

    @pytest.mark.asyncio
    async def test_candidate_from_another_poll(self, async_client, conn, voter_headers):
        conn.fetchrow.side_effect = [active_poll_row(), None]

        response = await async_client.post(
            "/api/polls/vote",
            headers=voter_headers,
            json={"poll_id": str(uuid4()), "candidate_id": str(uuid4())},
        )

        assert response.status_code == 404
        assert response.json()["error"] == "Candidate not found in this poll"

    @pytest.mark.asyncio
    async def test_rapid_second_attempt_throttled(self, async_client, voter_headers):
        payload = {"poll_id": str(uuid4()), "candidate_id": str(uuid4())}
        with patch.object(voting_service, "cast_vote", AsyncMock(side_effect=AlreadyVoted())):
            first = await async_client.post("/api/polls/vote", headers=voter_headers, json=payload)
            second = await async_client.post("/api/polls/vote", headers=voter_headers, json=payload)

        assert first.status_code == 400
        assert second.status_code == 429
        assert second.json()["error"] == "Please wait before voting again."
        assert "Retry-After" in second.headers
