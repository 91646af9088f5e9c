# slotbook/services/transactions.py
"""
Execução transacional das operações do motor.

Cada tentativa relê o estado (a função recebe a sessão limpa), decide,
grava e faz commit. Conflitos de escrita concorrente (version_id do slot
ou índice único) são repetidos até CONTENTION_MAX_RETRIES vezes; banco
indisponível vira Unavailable; erros do motor sobem sem retry.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from slotbook.core.config import settings
from slotbook.core.errors import Contention, Unavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_in_transaction(
    db: Session,
    fn: Callable[[Session], T],
    *,
    label: str = "operation",
    attempts: Optional[int] = None,
) -> T:
    max_attempts = attempts or settings.CONTENTION_MAX_RETRIES
    last_exc: Optional[Exception] = None

    for attempt in range(1, max_attempts + 1):
        try:
            result = fn(db)
            db.commit()
            return result
        except (StaleDataError, IntegrityError) as exc:
            db.rollback()
            last_exc = exc
            logger.warning("Conflito em %s (tentativa %s/%s): %s", label, attempt, max_attempts, exc)
        except (OperationalError, PoolTimeoutError) as exc:
            db.rollback()
            logger.error("Banco indisponível durante %s: %s", label, exc)
            raise Unavailable("banco de dados indisponível", operation=label) from exc
        except Exception:
            db.rollback()
            raise

    raise Contention(
        "operação em conflito com outra escrita concorrente", operation=label, attempts=max_attempts
    ) from last_exc
