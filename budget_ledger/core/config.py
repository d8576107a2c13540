from functools import lru_cache

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "budget-ledger"
    database_url: str = "postgresql+asyncpg://postgres:postgres@db:5432/yuknabung"
    timezone: str = "Asia/Jakarta"
    currency: str = "IDR"
    cron_secret: str = "change-me"
    auto_run_migrations: bool = True

    def get_sync_database_url(self) -> str:
        """Return a synchronous driver URL for Alembic/CLI usage."""

        if "+asyncpg" in self.database_url:
            return self.database_url.replace("+asyncpg", "+psycopg")
        if "+aiosqlite" in self.database_url:
            return self.database_url.replace("+aiosqlite", "")
        return self.database_url


class AppConfig(BaseModel):
    version: str = "0.1.0"
    description: str = (
        "Budget ledger API: wallets, monthly budgets, daily spending and weekly savings rollover."
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
