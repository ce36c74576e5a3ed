"""
DocVault Configuration

Centralized settings management using Pydantic BaseSettings.
All values are loaded from environment variables or a .env file.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with environment variable binding.

    Required env vars (no defaults):
        POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_HOST, POSTGRES_DB

    Optional env vars:
        POSTGRES_PORT (5432), LOG_LEVEL (INFO), STORAGE_ROOT (./storage),
        USER_FILE_SIZE_LIMIT (10 MB), CHUNK_SIZE / CHUNK_OVERLAP (tokens),
        embedding model names and the Azure API version.
    """

    PROJECT_NAME: str = "DocVault"

    # Database
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # Logging
    LOG_LEVEL: str = "INFO"

    # Object storage
    STORAGE_ROOT: str = "./storage"
    STORAGE_SIGNING_SECRET: str = "change-me"
    SIGNED_URL_TTL_SECONDS: int = 60 * 60 * 24
    USER_FILE_SIZE_LIMIT: int = 10_000_000

    # Chunking (measured in tokenizer tokens, not characters)
    CHUNK_SIZE: int = 4000
    CHUNK_OVERLAP: int = 200
    TOKENIZER_ENCODING: str = "cl100k_base"

    # Embeddings
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-3-small"
    AZURE_OPENAI_API_VERSION: str = "2023-12-01-preview"
    LOCAL_EMBEDDING_MODEL: str = "all-MiniLM-L6-v2"
    PRELOAD_LOCAL_MODEL: bool = True

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
