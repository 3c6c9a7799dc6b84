from functools import lru_cache
from typing import Literal, Optional
import os
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["development", "production"]

def _env_file_for(app_env: EnvName) -> str:
    return ".env.development" if app_env == "development" else ".env.production"

class Settings(BaseSettings):

    # Core
    APP_ENV: EnvName = "development"
    APP_NAME: str = "CateringReservations"
    DEBUG: bool = False
    GIT_SHA: str = "unknown"

    # Mongo
    MONGO_URI: str
    MONGO_DB: str
    MONGO_TLS: bool = True
    # None = detect from the server at startup (replica set / mongos)
    MONGO_TRANSACTIONS: Optional[bool] = None
    mongo_timeout_ms: int = 6000

    # Redis (optional, invoice cache only)
    REDIS_URL: Optional[str] = None
    invoice_cache_ttl: int = 24 * 3600           # frozen invoices never change

    # API
    ALLOWED_ORIGINS: str = ""                    # CSV

    # pydantic-settings config will be set dynamically in the factory below
    model_config = SettingsConfigDict(env_file=None, case_sensitive=True)

@lru_cache
def get_settings() -> Settings:
    """
    Factory that chooses the right .env file based on APP_ENV.
    Cache makes it cheap to inject via FastAPI dependencies.
    """
    app_env: EnvName = os.getenv("APP_ENV", "development")  # earliest switch
    env_file = _env_file_for(app_env)
    return Settings(
                _env_file=env_file,  # load .env.development or .env.production
                _env_file_encoding="utf-8"
    )
