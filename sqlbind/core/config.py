from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings, read from ``SQLBIND_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SQLBIND_",
        env_ignore_empty=True,
        extra="ignore",
    )

    # Default datasource (DataSource.from_settings)
    DB_PRODUCT_TYPE: str = "mysql"
    DB_HOST: str = "localhost"
    DB_PORT: int | None = None
    DB_NAME: str = "database_name"
    DB_USER: str = "root"
    DB_PASSWORD: str = ""

    DB_CONNECT_TIMEOUT: int = Field(default=10, ge=1)
    # Seconds; None or 0 disables the per-statement timeout
    DB_STATEMENT_TIMEOUT: float | None = None
    # Only ping a reused connection when it has been idle longer than this
    CONNECTION_PING_IDLE_SECONDS: float = 30.0

    # Collect human-readable trace entries into each call's Diagnostics
    DEBUG_TRACE: bool = False


settings = Settings()
