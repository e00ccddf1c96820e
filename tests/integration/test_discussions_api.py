"""Integration tests for discussion, review and reaction endpoints."""

from __future__ import annotations

import pytest
from httpx import AsyncClient


async def _questions(client: AsyncClient, book_id: int, headers: dict) -> dict[int, dict]:
    response = await client.get(f"/api/v1/books/{book_id}/discussions", headers=headers)
    assert response.status_code == 200
    return {q["breakpoint"]: q for q in response.json()["questions"]}


async def _read(client: AsyncClient, book_id: int, headers: dict, progress: int) -> None:
    response = await client.post(f"/api/v1/books/{book_id}/progress", json={"progress": progress}, headers=headers)
    assert response.status_code == 200


class TestDiscussionGate:
    """Questions stay locked until the reader gets there."""

    @pytest.mark.asyncio
    async def test_list_flags(self, client: AsyncClient, user, book, headers_for):
        headers = headers_for(user)
        await _read(client, book.id, headers, 25)
        questions = await _questions(client, book.id, headers)
        assert questions[25]["is_unlocked"] is True
        assert questions[50]["is_unlocked"] is False

    @pytest.mark.asyncio
    async def test_locked_detail(self, client: AsyncClient, user, book, headers_for):
        headers = headers_for(user)
        questions = await _questions(client, book.id, headers)
        response = await client.get(f"/api/v1/discussions/{questions[50]['id']}", headers=headers)
        assert response.status_code == 403
        assert response.json()["code"] == "discussion_locked"

    @pytest.mark.asyncio
    async def test_locked_comments(self, client: AsyncClient, user, book, headers_for):
        headers = headers_for(user)
        questions = await _questions(client, book.id, headers)
        response = await client.get(f"/api/v1/discussions/{questions[25]['id']}/comments", headers=headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_discussion(self, client: AsyncClient, user, headers_for):
        response = await client.get("/api/v1/discussions/9999", headers=headers_for(user))
        assert response.status_code == 404
        assert response.json()["code"] == "discussion_not_found"


class TestCommentEndpoints:
    """Posting comments and replies."""

    @pytest.mark.asyncio
    async def test_post_comment_and_reply(self, client: AsyncClient, user, book, headers_for):
        headers = headers_for(user)
        await _read(client, book.id, headers, 30)
        qid = (await _questions(client, book.id, headers))[25]["id"]

        response = await client.post(f"/api/v1/discussions/{qid}/comments", json={"content": "First!"}, headers=headers)
        assert response.status_code == 201
        root = response.json()
        assert root["content"] == "First!"
        assert root["user"]["username"] == user.username
        assert root["new_badges"] == ["DISCUSSION_STARTER"]

        response = await client.post(
            f"/api/v1/discussions/{qid}/comments",
            json={"content": "A reply", "parent_id": root["id"]},
            headers=headers,
        )
        assert response.status_code == 201

        response = await client.get(f"/api/v1/discussions/{qid}/comments", headers=headers)
        comments = response.json()["comments"]
        assert len(comments) == 1
        assert comments[0]["replies"][0]["content"] == "A reply"

    @pytest.mark.asyncio
    async def test_post_locked(self, client: AsyncClient, user, book, headers_for):
        headers = headers_for(user)
        qid = (await _questions(client, book.id, headers))[100]["id"]
        response = await client.post(f"/api/v1/discussions/{qid}/comments", json={"content": "x"}, headers=headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_whitespace_comment(self, client: AsyncClient, user, book, headers_for):
        headers = headers_for(user)
        await _read(client, book.id, headers, 100)
        qid = (await _questions(client, book.id, headers))[25]["id"]
        response = await client.post(f"/api/v1/discussions/{qid}/comments", json={"content": "   "}, headers=headers)
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_input"


class TestReviewEndpoints:
    """Reviews for finished books."""

    @pytest.mark.asyncio
    async def test_review_requires_finish(self, client: AsyncClient, user, book, headers_for):
        headers = headers_for(user)
        await _read(client, book.id, headers, 90)
        response = await client.post(f"/api/v1/books/{book.id}/reviews", json={"rating": 4}, headers=headers)
        assert response.status_code == 403
        assert response.json()["code"] == "book_not_finished"

    @pytest.mark.asyncio
    async def test_review_lifecycle(self, client: AsyncClient, user, book, headers_for):
        headers = headers_for(user)
        await _read(client, book.id, headers, 100)
        response = await client.post(
            f"/api/v1/books/{book.id}/reviews", json={"rating": 5, "review": "Loved it"}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["new_badges"] == ["FIRST_REVIEW"]

        listing = (await client.get(f"/api/v1/books/{book.id}/reviews")).json()
        assert listing["total_reviews"] == 1
        assert listing["average_rating"] == 5.0
        assert listing["reviews"][0]["user"]["id"] == user.id

        response = await client.delete(f"/api/v1/books/{book.id}/reviews", headers=headers)
        assert response.status_code == 204
        response = await client.delete(f"/api/v1/books/{book.id}/reviews", headers=headers)
        assert response.status_code == 404


class TestReactionEndpoints:
    """Toggle and count."""

    @pytest.mark.asyncio
    async def test_toggle_and_count(self, client: AsyncClient, user, book, headers_for):
        headers = headers_for(user)
        await _read(client, book.id, headers, 100)
        qid = (await _questions(client, book.id, headers))[25]["id"]
        comment = (
            await client.post(f"/api/v1/discussions/{qid}/comments", json={"content": "Hm"}, headers=headers)
        ).json()

        response = await client.post(
            "/api/v1/reactions", json={"type": "INSIGHTFUL", "comment_id": comment["id"]}, headers=headers
        )
        assert response.status_code == 201
        assert response.json()["added"] is True

        counts = (await client.get(f"/api/v1/reactions?comment_id={comment['id']}")).json()["counts"]
        assert counts["INSIGHTFUL"] == 1

        response = await client.post(
            "/api/v1/reactions", json={"type": "INSIGHTFUL", "comment_id": comment["id"]}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["added"] is False

    @pytest.mark.asyncio
    async def test_counts_need_a_target(self, client: AsyncClient):
        response = await client.get("/api/v1/reactions")
        assert response.status_code == 400
