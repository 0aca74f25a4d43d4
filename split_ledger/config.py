from decimal import Decimal
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings, read from the environment (and an optional .env file)"""
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Falls back to SQLite for local development
    database_url: str = "sqlite:///./split_ledger.db"
    # Only applied to PostgreSQL; keeps expense and member reads on one snapshot
    db_isolation_level: str = "REPEATABLE READ"

    secret_key: str = "your_secret_key"
    jwt_algorithm: str = "HS256"

    currency_minor_unit: Decimal = Decimal("0.01")
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
