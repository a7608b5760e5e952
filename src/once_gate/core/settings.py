"""Gate settings and configuration.

Settings are loaded from environment variables (and an optional `.env`
file) with defaults that work for a local SQLite-backed store.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

StoreBackend = Literal["memory", "sql", "redis"]


class Settings(BaseSettings):
    """Configuration options for the once gate.

    Values can be overridden via environment variables or .env files.
    """

    # Application metadata consulted by version/build policies
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    build_number: str = Field(default="1", alias="BUILD_NUMBER")
    app_distribution: str | None = Field(default=None, alias="APP_DISTRIBUTION")

    # Debug overrides only take effect when this is set
    debug: bool = Field(default=False, alias="DEBUG")

    # Persistent store selection
    store_backend: StoreBackend = Field(default="sql", alias="ONCE_STORE_BACKEND")

    # Database configuration
    database_url: str = Field(default="sqlite:///./once.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Redis configuration
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")
    redis_hash_key: str = Field(default="once:preferences", alias="ONCE_REDIS_HASH_KEY")

    # Keys used by run_on_new_version / run_on_new_build when none is given
    default_version_key: str = Field(default="once_key", alias="ONCE_DEFAULT_VERSION_KEY")
    default_build_key: str = Field(default="build_key", alias="ONCE_DEFAULT_BUILD_KEY")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        populate_by_name=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()
