# slotbook/services/waitlist.py
"""
Promoção FIFO da fila de espera.

Roda sempre dentro da transação de quem liberou a vaga; nunca faz commit.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from slotbook.crud.registration import registration_crud
from slotbook.models.registration import Registration, RegistrationStatus
from slotbook.models.session import Slot
from slotbook.services import capacity
from slotbook.services.codes import issue_code

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def waitlist_for(db: Session, slot_id: int) -> List[Registration]:
    return registration_crud.waitlist(db, slot_id=slot_id)


def close_gap(db: Session, slot: Slot, position: Optional[int]) -> int:
    """Desloca em -1 quem estava depois de `position`. Retorna quantos mudaram."""
    if position is None:
        return 0
    db.flush()
    shifted = 0
    for entry in waitlist_for(db, slot.id):
        if entry.waitlist_position is not None and entry.waitlist_position > position:
            entry.waitlist_position -= 1
            shifted += 1
    slot.updated_at = _now()
    return shifted


def promote_next(db: Session, slot: Slot) -> Optional[Registration]:
    """Promove no máximo uma pessoa: a de menor posição na fila."""
    if capacity.is_full(slot):
        return None
    queue = waitlist_for(db, slot.id)
    if not queue:
        return None

    head = queue[0]
    position = head.waitlist_position
    head.status = RegistrationStatus.confirmed
    head.waitlist_position = None
    head.confirmed_at = _now()
    slot.confirmed_count = capacity.apply_delta(slot, +1)
    issue_code(db, head)
    close_gap(db, slot, position)

    logger.info(
        "Inscrição %s promovida da fila (posição %s) na vaga %s; código %s",
        head.id, position, slot.id, head.unique_code,
    )
    return head
