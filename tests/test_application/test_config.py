"""
Tests for Settings defaults and credential checks.
"""
import pytest

from app.config import ConfigurationError, Settings


class TestDefaults:
    def test_job_defaults(self):
        # _env_file=None prevents reading from .env
        s = Settings(DATABASE_URL="sqlite:///:memory:", _env_file=None)
        assert s.TIMEZONE == "Asia/Kolkata"
        assert s.WHATSAPP_PROVIDER == "periskope"
        assert s.DEFAULT_EXPIRING_DAYS_BEFORE == 2
        assert s.DEFAULT_EXPIRED_DAYS_AFTER == 7
        assert s.DAILY_SUMMARY_TYPE == "daily_periskope"
        assert s.AUDIT_POLICY_SKIPS is False
        assert s.ADMIN_WHATSAPP_NUMBER == ""

    def test_sqlalchemy_url_uses_psycopg(self):
        s = Settings(DATABASE_URL="postgresql://u:p@db:5432/gym", _env_file=None)
        assert s.get_sqlalchemy_url() == "postgresql+psycopg://u:p@db:5432/gym"


class TestJobCredentials:
    def test_missing_periskope(self):
        s = Settings(DATABASE_URL="sqlite:///:memory:", PERISKOPE_API_KEY="k", _env_file=None)
        assert s.missing_job_credentials() == ["PERISKOPE_PHONE"]
        with pytest.raises(ConfigurationError, match="PERISKOPE_PHONE"):
            s.require_job_credentials()

    def test_missing_database_url(self):
        s = Settings(DATABASE_URL="", PERISKOPE_API_KEY="k", PERISKOPE_PHONE="1", _env_file=None)
        assert s.missing_job_credentials() == ["DATABASE_URL"]

    def test_meta_cloud_checks_meta_fields(self):
        s = Settings(
            DATABASE_URL="sqlite:///:memory:",
            WHATSAPP_PROVIDER="meta_cloud",
            META_PHONE_ID="123",
            _env_file=None,
        )
        assert s.missing_job_credentials() == ["META_ACCESS_TOKEN"]

    def test_complete(self, settings):
        assert settings.missing_job_credentials() == []
        settings.require_job_credentials()
