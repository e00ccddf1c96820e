"""Integration tests for poll endpoints."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient


class TestPollListing:
    """GET /api/v1/polls and /api/v1/polls/{id}"""

    @pytest.mark.asyncio
    async def test_list(self, client: AsyncClient, user, make_poll, headers_for):
        poll, books = await make_poll()
        response = await client.get("/api/v1/polls", headers=headers_for(user))
        assert response.status_code == 200
        polls = response.json()["polls"]
        assert len(polls) == 1
        assert polls[0]["id"] == poll.id
        assert polls[0]["is_open"] is True
        assert {c["book_id"] for c in polls[0]["candidates"]} == {b.id for b in books}

    @pytest.mark.asyncio
    async def test_detail_not_found(self, client: AsyncClient, user, headers_for):
        response = await client.get("/api/v1/polls/404", headers=headers_for(user))
        assert response.status_code == 404
        assert response.json()["code"] == "poll_not_found"


class TestVoting:
    """POST/DELETE /api/v1/polls/{id}/vote"""

    @pytest.mark.asyncio
    async def test_vote_move_and_remove(self, client: AsyncClient, user, make_poll, headers_for):
        poll, books = await make_poll()
        headers = headers_for(user)

        response = await client.post(f"/api/v1/polls/{poll.id}/vote", json={"book_id": books[0].id}, headers=headers)
        assert response.status_code == 200
        assert response.json()["previous_book_id"] is None

        response = await client.post(f"/api/v1/polls/{poll.id}/vote", json={"book_id": books[1].id}, headers=headers)
        assert response.json()["previous_book_id"] == books[0].id

        detail = (await client.get(f"/api/v1/polls/{poll.id}", headers=headers)).json()
        counts = {c["book_id"]: c["vote_count"] for c in detail["candidates"]}
        assert counts[books[0].id] == 0
        assert counts[books[1].id] == 1
        assert detail["user_vote_book_id"] == books[1].id

        response = await client.delete(f"/api/v1/polls/{poll.id}/vote", headers=headers)
        assert response.status_code == 204
        response = await client.delete(f"/api/v1/polls/{poll.id}/vote", headers=headers)
        assert response.status_code == 404
        assert response.json()["code"] == "vote_not_found"

    @pytest.mark.asyncio
    async def test_poll_not_open(self, client: AsyncClient, user, make_poll, headers_for):
        poll, books = await make_poll(is_open=False)
        response = await client.post(
            f"/api/v1/polls/{poll.id}/vote", json={"book_id": books[0].id}, headers=headers_for(user)
        )
        assert response.status_code == 409
        assert response.json()["code"] == "poll_not_open"

    @pytest.mark.asyncio
    async def test_not_a_candidate(self, client: AsyncClient, user, make_poll, make_book, headers_for):
        poll, _ = await make_poll()
        other = await make_book(title="Elsewhere")
        response = await client.post(
            f"/api/v1/polls/{poll.id}/vote", json={"book_id": other.id}, headers=headers_for(user)
        )
        assert response.status_code == 400
        assert response.json()["code"] == "not_a_candidate"


class TestAdminPolls:
    """Creating and closing polls."""

    @pytest.mark.asyncio
    async def test_member_cannot_create(self, client: AsyncClient, user, make_book, headers_for):
        a = await make_book(title="A")
        b = await make_book(title="B")
        now = datetime.now(timezone.utc)
        response = await client.post(
            "/api/v1/polls",
            json={
                "title": "Pick",
                "start_date": now.isoformat(),
                "end_date": (now + timedelta(days=3)).isoformat(),
                "for_month": now.isoformat(),
                "book_ids": [a.id, b.id],
            },
            headers=headers_for(user),
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_create_vote_close(self, client: AsyncClient, admin, make_user, make_book, headers_for):
        a = await make_book(title="A")
        b = await make_book(title="B")
        now = datetime.now(timezone.utc)
        response = await client.post(
            "/api/v1/polls",
            json={
                "title": "January pick",
                "start_date": (now - timedelta(hours=1)).isoformat(),
                "end_date": (now + timedelta(days=3)).isoformat(),
                "for_month": "2027-01-01T00:00:00+00:00",
                "book_ids": [a.id, b.id],
            },
            headers=headers_for(admin),
        )
        assert response.status_code == 201
        poll_id = response.json()["id"]

        voter = await make_user()
        await client.post(f"/api/v1/polls/{poll_id}/vote", json={"book_id": b.id}, headers=headers_for(voter))

        response = await client.post(f"/api/v1/polls/{poll_id}/close", headers=headers_for(admin))
        assert response.status_code == 200
        data = response.json()
        assert data["winner"]["book_id"] == b.id
        assert data["poll"]["is_active"] is False

        book = (await client.get(f"/api/v1/books/{b.id}")).json()
        assert book["status"] == "SCHEDULED"
        assert book["read_month"].startswith("2027-01-01")
        assert (await client.get(f"/api/v1/books/{a.id}")).json()["status"] == "DRAFT"

        response = await client.post(f"/api/v1/polls/{poll_id}/close", headers=headers_for(admin))
        assert response.status_code == 409
        assert response.json()["code"] == "poll_closed"

    @pytest.mark.asyncio
    async def test_member_cannot_close(self, client: AsyncClient, user, make_poll, headers_for):
        poll, _ = await make_poll()
        response = await client.post(f"/api/v1/polls/{poll.id}/close", headers=headers_for(user))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_create_needs_two_books(self, client: AsyncClient, admin, make_book, headers_for):
        a = await make_book()
        now = datetime.now(timezone.utc)
        response = await client.post(
            "/api/v1/polls",
            json={
                "title": "Pick",
                "start_date": now.isoformat(),
                "end_date": (now + timedelta(days=3)).isoformat(),
                "for_month": now.isoformat(),
                "book_ids": [a.id],
            },
            headers=headers_for(admin),
        )
        assert response.status_code == 422
