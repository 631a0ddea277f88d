import pytest
from pydantic import ValidationError

from registratura.config.settings import Settings


class TestSettingsDefaults:
    def test_default_app_env(self) -> None:
        s = Settings(_env_file=None)
        assert s.app_env == "dev"

    def test_default_db_port(self) -> None:
        s = Settings(_env_file=None)
        assert s.db_port == 5432

    def test_default_counter_backend(self) -> None:
        s = Settings(_env_file=None)
        assert s.counter_backend == "postgres"

    def test_default_notification_cap(self) -> None:
        s = Settings(_env_file=None)
        assert s.notification_batch_cap == 100

    def test_default_notifier_provider(self) -> None:
        s = Settings(_env_file=None)
        assert s.notifier_provider == "database"

    def test_reopen_disabled_by_default(self) -> None:
        s = Settings(_env_file=None)
        assert s.allow_reopen_resolved is False

    def test_default_permissions(self) -> None:
        s = Settings(_env_file=None)
        assert s.redirect_any_permission == "general_register.redirect_any"
        assert s.manage_any_permission == "general_register.manage_any"


class TestSettingsFromEnv:
    def test_loads_app_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APP_ENV", "production")
        s = Settings(_env_file=None)
        assert s.app_env == "production"

    def test_loads_db_host(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_HOST", "db.example.com")
        s = Settings(_env_file=None)
        assert s.db_host == "db.example.com"

    def test_loads_notification_cap(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NOTIFICATION_BATCH_CAP", "25")
        s = Settings(_env_file=None)
        assert s.notification_batch_cap == 25

    def test_loads_reopen_flag(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ALLOW_REOPEN_RESOLVED", "true")
        s = Settings(_env_file=None)
        assert s.allow_reopen_resolved is True


class TestSettingsValidation:
    def test_invalid_db_port_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_PORT", "not_a_number")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_invalid_cap_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NOTIFICATION_BATCH_CAP", "lots")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)
