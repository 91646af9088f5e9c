from typing import Any, Dict, Generator
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from slotbook.core.config import settings

def _normalize(url: str) -> str:
    if url and url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url and url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url

def _connect_args(url: str) -> Dict[str, Any]:
    # banco lento/fora do ar deve virar erro, nunca pendurar a request
    timeout = settings.STORE_TIMEOUT_SECONDS
    if url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": timeout}
    if url.startswith("postgresql"):
        return {"connect_timeout": timeout, "options": f"-c statement_timeout={timeout * 1000}"}
    return {}

RAW = settings.DATABASE_URL
if not RAW or not RAW.strip():
    RAW = "sqlite:///./data/slotbook.db"  # fallback dev

SQLALCHEMY_DATABASE_URL = _normalize(RAW)

_engine_kwargs: Dict[str, Any] = {"pool_pre_ping": True, "connect_args": _connect_args(SQLALCHEMY_DATABASE_URL)}
if ":memory:" not in SQLALCHEMY_DATABASE_URL:
    _engine_kwargs["pool_timeout"] = settings.STORE_TIMEOUT_SECONDS

engine = create_engine(SQLALCHEMY_DATABASE_URL, **_engine_kwargs)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
