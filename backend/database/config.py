"""
Database and service configuration
Reads environment variables (and an optional .env file) through pydantic-settings
"""
import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

BACKEND_DIR = Path(__file__).parent.parent


class DatabaseSettings(BaseSettings):
    """Database configuration - DATABASE_URL wins over the individual POSTGRES_* values."""

    database_url_direct: str = ""

    postgres_host: str = ""
    postgres_port: int = 5432
    postgres_user: str = "postgres"
    postgres_password: str = ""
    postgres_db: str = "inventory"
    postgres_sslmode: str = "disable"

    sqlite_path: str = str(BACKEND_DIR / "data" / "inventory.db")

    # Connection Pool Configuration
    pool_size: int = 10
    max_overflow: int = 5
    pool_pre_ping: bool = True
    pool_recycle: int = 1800
    use_null_pool: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def database_url(self) -> str:
        """Construct the async database URL."""
        direct_url = os.environ.get("DATABASE_URL", self.database_url_direct)
        if direct_url:
            if direct_url.startswith("postgres://"):
                direct_url = direct_url.replace("postgres://", "postgresql+asyncpg://", 1)
            elif direct_url.startswith("postgresql://") and "+asyncpg" not in direct_url:
                direct_url = direct_url.replace("postgresql://", "postgresql+asyncpg://", 1)
            direct_url = direct_url.replace("sslmode=require", "ssl=require")
            direct_url = direct_url.replace("sslmode=disable", "ssl=disable")
            return direct_url

        if self.postgres_host:
            ssl_param = f"?ssl={self.postgres_sslmode}" if self.postgres_sslmode != "disable" else ""
            return (
                f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
                f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
                f"{ssl_param}"
            )

        return f"sqlite+aiosqlite:///{self.sqlite_path}"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


class InventorySettings(BaseSettings):
    """Storage and e-signature configuration."""

    storage_root: str = str(BACKEND_DIR / "data" / "uploads")
    public_base_url: str = "http://localhost:8000/files"

    signature_api_url: str = "https://api.assinafy.com.br/v1"
    signature_api_key: str = ""
    signature_org_id: str = ""
    signature_timeout: float = 15.0

    default_actor: str = "Sistema"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


database_settings = DatabaseSettings()
inventory_settings = InventorySettings()
