#!/usr/bin/env python3
"""
Integration Tests for the Share Link API
Tests for chartshare/api/v1/share_links.py over HTTP
"""

from datetime import timedelta

import pytest

from chartshare.db.base import new_id, utcnow
from chartshare.db.models import ShareLink
from tests.conftest import principal_headers


async def create_link(client, chart_id, owner_id="owner-1", **params):
    return await client.post(
        f"/api/v1/charts/{chart_id}/share-link",
        params=params,
        headers=principal_headers(owner_id),
    )


class TestOwnerManagement:
    """Test creating, reading and revoking links"""

    @pytest.mark.asyncio
    async def test_create_then_get_existing(self, client, chart_factory):
        chart = await chart_factory(owner_id="owner-1")

        created = await create_link(client, chart.id)
        again = await create_link(client, chart.id)

        assert created.status_code == 201
        assert created.json()["is_new"] is True
        assert again.status_code == 200
        assert again.json()["is_new"] is False
        assert again.json()["token"] == created.json()["token"]

    @pytest.mark.asyncio
    async def test_url_uses_request_host(self, client, chart_factory):
        chart = await chart_factory(owner_id="owner-1")

        body = (await create_link(client, chart.id)).json()

        assert body["url"] == f"https://test/shared.html?token={body['token']}"

    @pytest.mark.asyncio
    async def test_regenerate(self, client, chart_factory):
        chart = await chart_factory(owner_id="owner-1")

        first = (await create_link(client, chart.id)).json()
        second = await create_link(client, chart.id, regenerate="true")

        assert second.status_code == 201
        assert second.json()["token"] != first["token"]
        old = await client.get(f"/api/v1/shared/{first['token']}")
        assert old.status_code == 410

    @pytest.mark.asyncio
    async def test_expiry(self, client, chart_factory):
        chart = await chart_factory(owner_id="owner-1")

        body = (await create_link(client, chart.id, expires_in_days=7)).json()

        assert body["expires_at"] is not None

    @pytest.mark.asyncio
    async def test_editor_cannot_manage_links(self, client, chart_factory):
        chart = await chart_factory(owner_id="owner-1", permissions={"user-1": "editor"})

        response = await create_link(client, chart.id, owner_id="user-1")

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_missing_chart_is_404(self, client):
        response = await create_link(client, new_id())

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_get_without_link_is_404(self, client, chart_factory):
        chart = await chart_factory(owner_id="owner-1")

        response = await client.get(
            f"/api/v1/charts/{chart.id}/share-link", headers=principal_headers("owner-1")
        )

        assert response.status_code == 404
        assert response.json()["error"]["details"]["error_type"] == "NO_ACTIVE_LINK"

    @pytest.mark.asyncio
    async def test_get_metadata(self, client, chart_factory):
        chart = await chart_factory(owner_id="owner-1")
        token = (await create_link(client, chart.id)).json()["token"]
        await client.get(f"/api/v1/shared/{token}")

        response = await client.get(
            f"/api/v1/charts/{chart.id}/share-link", headers=principal_headers("owner-1")
        )

        assert response.status_code == 200
        assert response.json()["token"] == token
        assert response.json()["access_count"] == 1

    @pytest.mark.asyncio
    async def test_revoke(self, client, chart_factory):
        chart = await chart_factory(owner_id="owner-1")
        token = (await create_link(client, chart.id)).json()["token"]

        response = await client.delete(
            f"/api/v1/charts/{chart.id}/share-link", headers=principal_headers("owner-1")
        )

        assert response.status_code == 200
        assert response.json()["revoked_count"] == 1
        assert (await client.get(f"/api/v1/shared/{token}")).status_code == 410

    @pytest.mark.asyncio
    async def test_revoke_with_nothing_active(self, client, chart_factory):
        chart = await chart_factory(owner_id="owner-1")

        response = await client.delete(
            f"/api/v1/charts/{chart.id}/share-link", headers=principal_headers("owner-1")
        )

        assert response.status_code == 200
        assert response.json()["revoked_count"] == 0


class TestAnonymousAccess:
    """Test reading charts through share links"""

    @pytest.mark.asyncio
    async def test_no_sign_in_needed(self, client, chart_factory):
        chart = await chart_factory(owner_id="owner-1", permissions={"user-1": "editor"})
        token = (await create_link(client, chart.id)).json()["token"]

        response = await client.get(f"/api/v1/shared/{token}")

        assert response.status_code == 200
        body = response.json()
        assert body["chart"]["id"] == chart.id
        assert body["role"] == "viewer"
        assert "owner_id" not in body["chart"]
        assert "permissions" not in body["chart"]
        assert response.headers["Cache-Control"] == "private, max-age=300"

    @pytest.mark.asyncio
    async def test_unknown_token_is_404(self, client):
        response = await client.get(f"/api/v1/shared/{new_id()}")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_malformed_token_is_400(self, client):
        response = await client.get("/api/v1/shared/not-a-token")

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_expired_link_is_410(self, client, db, chart_factory):
        chart = await chart_factory(owner_id="owner-1")
        token = new_id()
        db.add(
            ShareLink(
                id=new_id(),
                token=token,
                chart_id=chart.id,
                created_by="owner-1",
                created_at=utcnow() - timedelta(days=2),
                expires_at=utcnow() - timedelta(days=1),
            )
        )
        await db.commit()

        response = await client.get(f"/api/v1/shared/{token}")

        assert response.status_code == 410
        details = response.json()["error"]["details"]
        assert details["error_type"] == "EXPIRED"
        assert "expires_at" in details

    @pytest.mark.asyncio
    async def test_revoked_link_is_410(self, client, chart_factory):
        chart = await chart_factory(owner_id="owner-1")
        token = (await create_link(client, chart.id)).json()["token"]
        await client.delete(f"/api/v1/charts/{chart.id}/share-link", headers=principal_headers("owner-1"))

        response = await client.get(f"/api/v1/shared/{token}")

        details = response.json()["error"]["details"]
        assert details["error_type"] == "REVOKED"
        assert "revoked_at" in details

    @pytest.mark.asyncio
    async def test_anonymous_callers_are_limited_by_ip(self, client, chart_factory, monkeypatch):
        from chartshare.services.rate_limit import RATE_LIMITS, RateLimitPolicy

        monkeypatch.setitem(
            RATE_LIMITS, "SHARE_LINK_GET", RateLimitPolicy(max=1, window_ms=60 * 60 * 1000, name="1 hour")
        )
        chart = await chart_factory(owner_id="owner-1")
        token = (await create_link(client, chart.id)).json()["token"]

        first = await client.get(f"/api/v1/shared/{token}", headers={"x-forwarded-for": "203.0.113.7"})
        second = await client.get(f"/api/v1/shared/{token}", headers={"x-forwarded-for": "203.0.113.7"})
        other = await client.get(f"/api/v1/shared/{token}", headers={"x-forwarded-for": "198.51.100.2"})

        assert first.status_code == 200
        assert second.status_code == 429
        assert other.status_code == 200
