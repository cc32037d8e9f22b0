"""
Emuji Backend: Settings Tests
================================

What we test:
    ✅ Environment variable names (DB_USER, DB_PASS, DB_NAME, CLOUD_SQL_INSTANCE_NAME, PORT)
    ✅ URL resolution: Cloud SQL socket, TCP host, DATABASE_URL override
    ✅ Pool defaults and bounds validation
"""

import pytest
from pydantic import ValidationError
from sqlalchemy.engine import URL

from emuji.config import Settings


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "DATABASE_URL", "DB_USER", "DB_PASS", "DB_NAME", "DB_HOST",
        "CLOUD_SQL_INSTANCE_NAME", "PORT", "RECORD_VOTES",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestEnvironment:

    def test_reads_database_credentials(self, clean_env):
        clean_env.setenv("DB_USER", "my-user")
        clean_env.setenv("DB_PASS", "my-user-password")
        clean_env.setenv("DB_NAME", "my-database")
        clean_env.setenv("CLOUD_SQL_INSTANCE_NAME", "proj:us-central1:emujis")

        settings = Settings(_env_file=None)

        assert settings.db_user == "my-user"
        assert settings.db_pass == "my-user-password"
        assert settings.db_name == "my-database"
        assert settings.cloud_sql_instance_name == "proj:us-central1:emujis"

    def test_port_defaults_to_8080(self, clean_env):
        assert Settings(_env_file=None).port == 8080

    def test_port_from_env(self, clean_env):
        clean_env.setenv("PORT", "3000")
        assert Settings(_env_file=None).port == 3000

    def test_vote_recording_off_by_default(self, clean_env):
        assert Settings(_env_file=None).record_votes is False


class TestDatabaseUrl:

    def test_cloud_sql_socket(self, clean_env):
        settings = Settings(
            db_user="u",
            db_pass="p",
            db_name="votes-db",
            cloud_sql_instance_name="proj:region:inst",
            _env_file=None,
        )
        url = settings.sqlalchemy_url

        assert isinstance(url, URL)
        assert url.drivername == "postgresql+asyncpg"
        assert url.username == "u"
        assert url.password == "p"
        assert url.database == "votes-db"
        assert url.host is None
        assert url.query["host"] == "/cloudsql/proj:region:inst"

    def test_tcp_host(self, clean_env):
        settings = Settings(db_host="127.0.0.1", db_port=5433, _env_file=None)
        url = settings.sqlalchemy_url

        assert url.host == "127.0.0.1"
        assert url.port == 5433
        assert "host" not in url.query

    def test_database_url_overrides(self, clean_env):
        settings = Settings(
            database_url="sqlite+aiosqlite:///./x.db",
            cloud_sql_instance_name="ignored",
            _env_file=None,
        )
        assert settings.sqlalchemy_url == "sqlite+aiosqlite:///./x.db"


class TestValidation:

    def test_pool_defaults(self, clean_env):
        settings = Settings(_env_file=None)
        assert settings.db_pool_min == 5
        assert settings.db_pool_max == 5
        assert settings.db_acquire_timeout_ms == 30_000
        assert settings.db_idle_timeout_ms == 600_000
        assert settings.db_max_lifetime_ms == 600_000
        assert settings.db_create_retry_interval_ms == 200

    def test_min_above_max_rejected(self, clean_env):
        with pytest.raises(ValidationError):
            Settings(db_pool_min=6, db_pool_max=5, _env_file=None)

    def test_invalid_log_level_rejected(self, clean_env):
        with pytest.raises(ValidationError):
            Settings(log_level="chatty", _env_file=None)

    def test_log_level_normalized(self, clean_env):
        assert Settings(log_level="debug", _env_file=None).log_level == "DEBUG"

    def test_missing_instance_reported(self, clean_env):
        settings = Settings(db_pass="secret", _env_file=None)
        with pytest.raises(ValueError, match="CLOUD_SQL_INSTANCE_NAME"):
            settings.validate_required_for_production()

    def test_complete_config_passes(self, clean_env):
        settings = Settings(
            db_pass="secret", cloud_sql_instance_name="p:r:i", _env_file=None
        )
        settings.validate_required_for_production()
