#!/usr/bin/env python3
"""
Unit Tests for Configuration Management
Tests for chartshare/core/config.py
"""

import pytest
from pydantic import ValidationError

from chartshare.core.config import Settings, settings


class TestSettingsDefaults:
    """Test default settings values"""

    def test_app_name_default(self):
        """Test default APP_NAME"""
        assert settings.APP_NAME == "Chart Sharing Service"

    def test_max_reason_length_default(self):
        """Test reasons and review notes are capped at 500 characters"""
        assert settings.MAX_REASON_LENGTH == 500

    def test_share_links_never_expire_by_default(self):
        """Test SHARE_LINK_TTL_DAYS is unset"""
        assert Settings().SHARE_LINK_TTL_DAYS is None

    def test_database_url_override(self):
        """Test DATABASE_URL wins over the PostgreSQL settings"""
        assert settings.database_url.startswith("sqlite+aiosqlite")

    def test_postgres_url_uses_asyncpg(self):
        """Test the derived PostgreSQL URL uses the asyncpg driver"""
        custom = Settings(POSTGRES_USER="u", POSTGRES_PASSWORD="p", POSTGRES_HOST="db", POSTGRES_DB="charts")
        assert custom.POSTGRES_URL == "postgresql+asyncpg://u:p@db:5432/charts"


class TestSettingsValidation:
    """Test settings validators"""

    def test_invalid_environment_rejected(self):
        """Test unknown ENVIRONMENT values are rejected"""
        with pytest.raises(ValidationError):
            Settings(ENVIRONMENT="qa")

    def test_log_level_normalized(self):
        """Test LOG_LEVEL is upper-cased"""
        assert Settings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"

    def test_invalid_log_level_rejected(self):
        """Test unknown LOG_LEVEL values are rejected"""
        with pytest.raises(ValidationError):
            Settings(LOG_LEVEL="chatty")

    def test_non_positive_share_link_ttl_rejected(self):
        """Test SHARE_LINK_TTL_DAYS must be positive"""
        with pytest.raises(ValidationError):
            Settings(SHARE_LINK_TTL_DAYS=0)


class TestAdminUserIds:
    """Test bootstrap admin parsing"""

    def test_comma_separated_ids(self):
        """Test ids are split and trimmed"""
        custom = Settings(ADMIN_USER_IDS=" admin-1, admin-2 ,,")
        assert custom.admin_user_ids == ["admin-1", "admin-2"]

    def test_empty_ids(self):
        """Test an empty setting yields no admins"""
        assert Settings(ADMIN_USER_IDS="").admin_user_ids == []
