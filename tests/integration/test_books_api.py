"""Integration tests for book endpoints."""

from __future__ import annotations

import pytest
from httpx import AsyncClient


class TestBooks:
    """Catalog reads and admin writes."""

    @pytest.mark.asyncio
    async def test_list_and_filter(self, client: AsyncClient, make_book):
        await make_book(title="Dune")
        response = await client.get("/api/v1/books")
        assert [b["title"] for b in response.json()["books"]] == ["Dune"]
        response = await client.get("/api/v1/books?status=DRAFT")
        assert response.json()["books"] == []

    @pytest.mark.asyncio
    async def test_unknown_status(self, client: AsyncClient):
        response = await client.get("/api/v1/books?status=LOST")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_get_missing(self, client: AsyncClient):
        response = await client.get("/api/v1/books/77")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_admin_creates_book_and_question(self, client: AsyncClient, admin, user, headers_for):
        response = await client.post(
            "/api/v1/books",
            json={"title": "Piranesi", "author": "Susanna Clarke", "page_count": 272},
            headers=headers_for(admin),
        )
        assert response.status_code == 201
        book = response.json()
        assert book["status"] == "DRAFT"

        response = await client.post(
            f"/api/v1/books/{book['id']}/discussions",
            json={"question": "Who is the Other?", "breakpoint": 40},
            headers=headers_for(admin),
        )
        assert response.status_code == 201
        assert response.json()["breakpoint"] == 40

        questions = (await client.get(f"/api/v1/books/{book['id']}/discussions", headers=headers_for(user))).json()
        assert questions["questions"][0]["is_unlocked"] is False

    @pytest.mark.asyncio
    async def test_member_cannot_create(self, client: AsyncClient, user, headers_for):
        response = await client.post(
            "/api/v1/books", json={"title": "X", "author": "Y"}, headers=headers_for(user)
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_breakpoint_out_of_range(self, client: AsyncClient, admin, make_book, headers_for):
        book = await make_book()
        response = await client.post(
            f"/api/v1/books/{book.id}/discussions",
            json={"question": "Too early?", "breakpoint": 0},
            headers=headers_for(admin),
        )
        assert response.status_code == 422
