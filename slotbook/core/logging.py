# slotbook/core/logging.py
import logging

from slotbook.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

def setup_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    # uvicorn já loga cada request
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
