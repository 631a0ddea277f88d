from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "registratura"
    db_username: str = "registratura"
    db_password: str = "secret"
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10

    counter_backend: str = "postgres"

    notifier_provider: str = "database"
    notifier_webhook_url: str = ""
    notifier_timeout_seconds: int = 10
    notification_batch_cap: int = 100
    notification_subject_max_chars: int = 200
    notification_link_base: str = "/dashboard/registry/general-register"

    redirect_any_permission: str = "general_register.redirect_any"
    manage_any_permission: str = "general_register.manage_any"
    allow_reopen_resolved: bool = False

    expiry_sweep_interval_seconds: int = 3600
