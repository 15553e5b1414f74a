#!/usr/bin/env python3
"""
Integration Tests for the Chart Sharing API
Tests for chartshare/api/v1/sharing.py over HTTP
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from chartshare.api.dependencies import get_permission_mutator
from chartshare.db.base import new_id
from chartshare.main import app
from chartshare.services.sharing import PermissionMutator
from tests.conftest import principal_headers


class TestAuthentication:
    """Test caller identity handling"""

    @pytest.mark.asyncio
    async def test_missing_principal_is_401(self, client, chart_factory):
        chart = await chart_factory()

        response = await client.get(f"/api/v1/charts/{chart.id}/share")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "authentication_error"

    @pytest.mark.asyncio
    async def test_malformed_principal_is_401(self, client, chart_factory):
        chart = await chart_factory()

        response = await client.get(
            f"/api/v1/charts/{chart.id}/share",
            headers={"x-ms-client-principal": "not base64 json"},
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_principal_id_header_fallback(self, client, chart_factory):
        chart = await chart_factory(owner_id="owner-1")

        response = await client.get(
            f"/api/v1/charts/{chart.id}/share",
            headers={"x-ms-client-principal-id": "owner-1"},
        )

        assert response.status_code == 200


class TestShareChart:
    """Test granting and revoking per-chart roles"""

    @pytest.mark.asyncio
    async def test_owner_shares_then_lists(self, client, chart_factory):
        chart = await chart_factory(owner_id="owner-1")

        response = await client.post(
            f"/api/v1/charts/{chart.id}/share",
            json={"target_user_id": "user-1", "role": "editor"},
            headers=principal_headers("owner-1"),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["role"] == "editor"
        assert body["remaining"] == 49

        listing = await client.get(f"/api/v1/charts/{chart.id}/share", headers=principal_headers("owner-1"))
        assert listing.status_code == 200
        assert [(p["user_id"], p["role"]) for p in listing.json()["permissions"]] == [("user-1", "editor")]

    @pytest.mark.asyncio
    async def test_non_owner_gets_same_404_as_missing_chart(self, client, chart_factory):
        chart = await chart_factory(owner_id="owner-1", permissions={"user-1": "editor"})

        foreign = await client.post(
            f"/api/v1/charts/{chart.id}/share",
            json={"target_user_id": "user-2"},
            headers=principal_headers("user-1"),
        )
        missing = await client.post(
            f"/api/v1/charts/{new_id()}/share",
            json={"target_user_id": "user-2"},
            headers=principal_headers("user-1"),
        )

        assert foreign.status_code == 404
        assert missing.status_code == 404
        assert foreign.json()["error"]["message"] == missing.json()["error"]["message"]

    @pytest.mark.asyncio
    async def test_store_fault_listing_is_503(self, client, chart_factory):
        chart = await chart_factory(owner_id="owner-1")
        failing_db = AsyncMock()
        failing_db.execute.side_effect = SQLAlchemyError("store down")
        app.dependency_overrides[get_permission_mutator] = lambda: PermissionMutator(failing_db)

        response = await client.get(f"/api/v1/charts/{chart.id}/share", headers=principal_headers("owner-1"))

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "store_unavailable"

    @pytest.mark.asyncio
    async def test_invalid_role_is_400(self, client, chart_factory):
        chart = await chart_factory(owner_id="owner-1")

        response = await client.post(
            f"/api/v1/charts/{chart.id}/share",
            json={"target_user_id": "user-1", "role": "owner"},
            headers=principal_headers("owner-1"),
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_share_with_self_is_400(self, client, chart_factory):
        chart = await chart_factory(owner_id="owner-1")

        response = await client.post(
            f"/api/v1/charts/{chart.id}/share",
            json={"target_user_id": "owner-1"},
            headers=principal_headers("owner-1"),
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Cannot share chart with yourself"

    @pytest.mark.asyncio
    async def test_malformed_chart_id_is_400(self, client):
        response = await client.post(
            "/api/v1/charts/not-a-uuid/share",
            json={"target_user_id": "user-1"},
            headers=principal_headers("owner-1"),
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_revoke(self, client, chart_factory):
        chart = await chart_factory(owner_id="owner-1", permissions={"user-1": "viewer"})

        response = await client.request(
            "DELETE",
            f"/api/v1/charts/{chart.id}/share",
            json={"target_user_id": "user-1"},
            headers=principal_headers("owner-1"),
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Revoked access for user-1"

    @pytest.mark.asyncio
    async def test_revoke_unknown_entry_is_400(self, client, chart_factory):
        chart = await chart_factory(owner_id="owner-1")

        response = await client.request(
            "DELETE",
            f"/api/v1/charts/{chart.id}/share",
            json={"target_user_id": "user-9"},
            headers=principal_headers("owner-1"),
        )

        assert response.status_code == 400


class TestAccessProbe:
    """Test the access decision endpoint"""

    @pytest.mark.asyncio
    async def test_viewer_may_read_but_not_edit(self, client, chart_factory):
        chart = await chart_factory(owner_id="owner-1", permissions={"user-1": "viewer"})

        read = await client.get(f"/api/v1/charts/{chart.id}/access", headers=principal_headers("user-1"))
        edit = await client.get(
            f"/api/v1/charts/{chart.id}/access",
            params={"action": "edit"},
            headers=principal_headers("user-1"),
        )

        assert read.status_code == 200
        assert read.json()["allowed"] is True
        assert read.json()["effective_role"] == "viewer"
        assert edit.status_code == 200
        assert edit.json()["allowed"] is False

    @pytest.mark.asyncio
    async def test_owner_source(self, client, chart_factory):
        chart = await chart_factory(owner_id="owner-1")

        response = await client.get(
            f"/api/v1/charts/{chart.id}/access",
            params={"action": "share"},
            headers=principal_headers("owner-1"),
        )

        assert response.json()["allowed"] is True
        assert response.json()["effective_role"] == "owner"

    @pytest.mark.asyncio
    async def test_missing_chart_is_404(self, client):
        response = await client.get(f"/api/v1/charts/{new_id()}/access", headers=principal_headers("user-1"))

        assert response.status_code == 404


class TestRateLimiting:
    """Test throttling over HTTP"""

    @pytest.mark.asyncio
    async def test_over_limit_is_429_with_retry_after(self, client, chart_factory, monkeypatch):
        from chartshare.services.rate_limit import RATE_LIMITS, RateLimitPolicy

        monkeypatch.setitem(
            RATE_LIMITS, "GET_CHART", RateLimitPolicy(max=2, window_ms=60 * 60 * 1000, name="1 hour")
        )
        chart = await chart_factory(owner_id="owner-1")
        headers = principal_headers("owner-1")

        for _ in range(2):
            assert (await client.get(f"/api/v1/charts/{chart.id}/share", headers=headers)).status_code == 200
        response = await client.get(f"/api/v1/charts/{chart.id}/share", headers=headers)

        assert response.status_code == 429
        assert response.json()["error"]["code"] == "rate_limit_exceeded"
        assert int(response.headers["Retry-After"]) >= 1

    @pytest.mark.asyncio
    async def test_limits_are_per_user(self, client, chart_factory, monkeypatch):
        from chartshare.services.rate_limit import RATE_LIMITS, RateLimitPolicy

        monkeypatch.setitem(
            RATE_LIMITS, "GET_CHART", RateLimitPolicy(max=1, window_ms=60 * 60 * 1000, name="1 hour")
        )
        chart = await chart_factory(owner_id="owner-1", permissions={"user-1": "viewer"})

        await client.get(f"/api/v1/charts/{chart.id}/access", headers=principal_headers("owner-1"))
        response = await client.get(f"/api/v1/charts/{chart.id}/access", headers=principal_headers("user-1"))

        assert response.status_code == 200
