"""
Application Configuration

Centralized settings management using Pydantic BaseSettings.
All values are loaded from environment variables or .env file.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with environment variable binding.

    Required env vars (no defaults):
        POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_HOST, POSTGRES_DB

    Optional env vars:
        POSTGRES_PORT (5432), DB_COMMAND_TIMEOUT (10.0),
        OPENAI_API_KEY (unset or 'mock' disables the provider),
        OPENAI_EMBEDDING_MODEL, EMBEDDING_TIMEOUT (10.0),
        QDRANT_URL (unset disables semantic search), QDRANT_API_KEY,
        QDRANT_COLLECTION (notes), QDRANT_TIMEOUT (5.0),
        SEARCH_ESCAPE_REGEX (False), LOG_LEVEL (INFO), JSON_LOGS (False)
    """

    PROJECT_NAME: str = "mod-notes"

    # Database
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_HOST: str
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str
    DB_COMMAND_TIMEOUT: float = 10.0

    # Embedding provider
    OPENAI_API_KEY: str | None = None
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-3-small"
    EMBEDDING_TIMEOUT: float = 10.0

    # Vector index
    QDRANT_URL: str | None = None
    QDRANT_API_KEY: str | None = None
    QDRANT_COLLECTION: str = "notes"
    QDRANT_TIMEOUT: float = 5.0

    # Search
    SEARCH_ESCAPE_REGEX: bool = False  # False keeps raw patterns live

    # Logging
    LOG_LEVEL: str = "INFO"
    JSON_LOGS: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",  # Silently ignore unknown env vars
    )

    @property
    def DATABASE_URL(self) -> str:
        """Async PostgreSQL connection string using asyncpg driver."""
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


settings = Settings()  # type: ignore[call-arg]
