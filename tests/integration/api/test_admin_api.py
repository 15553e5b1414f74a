#!/usr/bin/env python3
"""
Integration Tests for the Admin API
Tests for chartshare/api/v1/admin.py and the service endpoints
"""

import pytest

from chartshare.core.config import settings
from tests.conftest import principal_headers

ADMIN = principal_headers("bootstrap-admin")


class TestGlobalRoles:
    """Test global role management"""

    @pytest.mark.asyncio
    async def test_non_admin_is_403(self, client):
        response = await client.get("/api/v1/admin/users", headers=principal_headers("user-1"))

        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Access denied: Admin role required"

    @pytest.mark.asyncio
    async def test_anonymous_is_401(self, client):
        response = await client.get("/api/v1/admin/users")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_list_includes_bootstrap_admins(self, client, global_role_factory):
        await global_role_factory("user-1", "editor")

        response = await client.get("/api/v1/admin/users", headers=ADMIN)

        assert response.status_code == 200
        users = {(u["user_id"], u["role"], u["bootstrap"]) for u in response.json()["users"]}
        assert users == {("bootstrap-admin", "admin", True), ("user-1", "editor", False)}
        assert response.json()["total"] == 2

    @pytest.mark.asyncio
    async def test_set_then_remove(self, client):
        created = await client.post("/api/v1/admin/users/user-1/role", json={"role": "admin"}, headers=ADMIN)

        assert created.status_code == 200
        assert created.json()["role"] == "admin"

        # The new admin can now manage roles too
        listing = await client.get("/api/v1/admin/users", headers=principal_headers("user-1"))
        assert listing.status_code == 200

        removed = await client.delete("/api/v1/admin/users/user-1/role", headers=ADMIN)
        assert removed.status_code == 200
        forbidden = await client.get("/api/v1/admin/users", headers=principal_headers("user-1"))
        assert forbidden.status_code == 403

    @pytest.mark.asyncio
    async def test_invalid_role_is_400(self, client):
        response = await client.post("/api/v1/admin/users/user-1/role", json={"role": "owner"}, headers=ADMIN)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_remove_missing_role_is_404(self, client):
        response = await client.delete("/api/v1/admin/users/user-9/role", headers=ADMIN)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_global_admin_edits_without_chart_entry(self, client, chart_factory):
        chart = await chart_factory(owner_id="owner-1")

        response = await client.get(
            f"/api/v1/charts/{chart.id}/access", params={"action": "edit"}, headers=ADMIN
        )

        assert response.json()["allowed"] is True
        assert response.json()["source"] == "global-role"


class TestServiceEndpoints:
    """Test health and metrics"""

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["services"]["database"] == "healthy"

    @pytest.mark.asyncio
    async def test_metrics(self, client, monkeypatch):
        monkeypatch.setattr(settings, "ENABLE_METRICS", True)

        response = await client.get("/api/v1/admin/metrics")

        assert response.status_code == 200
        assert "http_requests_total" in response.text

    @pytest.mark.asyncio
    async def test_metrics_disabled(self, client, monkeypatch):
        monkeypatch.setattr(settings, "ENABLE_METRICS", False)

        response = await client.get("/api/v1/admin/metrics")

        assert response.status_code == 404
