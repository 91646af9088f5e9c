# slotbook/core/config.py
import os
from typing import ClassVar
from pydantic import BaseModel, Field

def _default_database_url() -> str:
    data_dir = os.path.abspath(os.getenv("DATA_DIR", "./data"))
    os.makedirs(data_dir, exist_ok=True)
    return os.getenv("DATABASE_URL", f"sqlite:///{os.path.join(data_dir, 'slotbook.db')}")

def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}

class Settings(BaseModel):
    # Constante (não vira campo Pydantic)
    DATA_DIR: ClassVar[str] = os.path.abspath(os.getenv("DATA_DIR", "./data"))

    DATABASE_URL: str = Field(default_factory=_default_database_url)
    SECRET_KEY: str = Field(default_factory=lambda: os.getenv("SECRET_KEY", "CHANGE_ME_SUPER_SECRET"))
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default_factory=lambda: int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30")))

    # motor de inscrições
    CONTENTION_MAX_RETRIES: int = Field(default_factory=lambda: int(os.getenv("CONTENTION_MAX_RETRIES", "3")))
    CODE_MAX_ATTEMPTS: int = Field(default_factory=lambda: int(os.getenv("CODE_MAX_ATTEMPTS", "10")))
    STORE_TIMEOUT_SECONDS: int = Field(default_factory=lambda: int(os.getenv("STORE_TIMEOUT_SECONDS", "10")))

    LOG_LEVEL: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    RUN_MIGRATIONS_ON_STARTUP: bool = Field(default_factory=lambda: _env_bool("RUN_MIGRATIONS_ON_STARTUP", "true"))
    SEED_ADMIN_EMAIL: str = Field(default_factory=lambda: os.getenv("SEED_ADMIN_EMAIL", "admin@slotbook.local"))
    SEED_ADMIN_PASSWORD: str = Field(default_factory=lambda: os.getenv("SEED_ADMIN_PASSWORD", "admin123"))

settings = Settings()
