"""Config file."""
from urllib.parse import quote_plus

from pydantic import AnyHttpUrl, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from asset_sync_engine.app.domain.errors import UnsupportedChainError


class Settings(BaseSettings):
    """Application settings."""

    # PROJECT
    project_name: str = Field(..., alias="PROJECT_NAME")

    # DATABASE
    postgres_user: str = Field(..., alias="POSTGRES_USER")
    postgres_password: SecretStr = Field(..., alias="POSTGRES_PASSWORD")
    postgres_server: str = Field(..., alias="POSTGRES_SERVER")
    postgres_port: int = Field(..., alias="POSTGRES_PORT")
    postgres_db: str = Field(..., alias="POSTGRES_DB")
    database_url: str | None = None
    sync_database_url: str | None = None

    # INDEXER
    indexer_api_url: AnyHttpUrl = Field(..., alias="INDEXER_API_URL")
    indexer_api_version: str = Field("u/v1", alias="INDEXER_API_VERSION")
    indexer_timeout_seconds: float = Field(15.0, alias="INDEXER_TIMEOUT_SECONDS")

    # PRICES
    price_api_url: AnyHttpUrl = Field(..., alias="PRICE_API_URL")
    price_batch_size: int = Field(100, alias="PRICE_BATCH_SIZE", gt=0)
    price_timeout_seconds: float = Field(15.0, alias="PRICE_TIMEOUT_SECONDS")

    # RPC (JSON object: {"1": "https://...", "137": "https://..."})
    rpc_urls: dict[int, str] = Field(default_factory=dict, alias="RPC_URLS")
    rpc_timeout_seconds: float = Field(30.0, alias="RPC_TIMEOUT_SECONDS")

    # CACHE
    sync_ttl_seconds: float = Field(40.0, alias="SYNC_TTL_SECONDS", gt=0)
    indexer_ttl_seconds: float = Field(10.0, alias="INDEXER_TTL_SECONDS", gt=0)

    @model_validator(mode="after")
    def assemble_db_urls(self) -> "Settings":
        user = quote_plus(self.postgres_user)
        password = quote_plus(self.postgres_password.get_secret_value())
        host = self.postgres_server
        port = self.postgres_port
        db = self.postgres_db

        if not self.database_url:
            self.database_url = f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db}"

        if not self.sync_database_url:
            self.sync_database_url = f"postgresql://{user}:{password}@{host}:{port}/{db}"

        return self

    def rpc_url(self, chain_id: int) -> str:
        try:
            return self.rpc_urls[chain_id]
        except KeyError:
            raise UnsupportedChainError(chain_id)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )


settings: Settings = Settings()
