# slotbook/services/auditor.py
"""
Auditoria de consistência disparada na leitura da sessão.

Recalcula o total de confirmados de cada vaga a partir das inscrições e
corrige `confirmed_count` quando diverge. Também renumera a fila de espera
para 1..N caso encontre buracos ou posições repetidas. A correção roda em
transação própria, protegida pelo version_id do slot.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from slotbook.crud.registration import registration_crud
from slotbook.crud.session import session_crud
from slotbook.models.session import Slot
from slotbook.services import capacity
from slotbook.services.transactions import run_in_transaction

logger = logging.getLogger(__name__)


@dataclass
class SlotRepair:
    slot_id: int
    stored_count: int
    true_count: int
    renumbered: List[int] = field(default_factory=list)

    @property
    def count_fixed(self) -> bool:
        return self.stored_count != self.true_count


def _drift(db: Session, slot: Slot) -> Optional[SlotRepair]:
    true_count = registration_crud.confirmed_count(db, slot_id=slot.id)
    queue = registration_crud.waitlist(db, slot_id=slot.id)
    renumbered = [
        entry.id for expected, entry in enumerate(queue, start=1)
        if entry.waitlist_position != expected
    ]
    if true_count == slot.confirmed_count and not renumbered:
        return None
    return SlotRepair(slot.id, slot.confirmed_count, true_count, renumbered)


def _repair_txn(db: Session, slot_id: int) -> Optional[SlotRepair]:
    slot = db.get(Slot, slot_id)
    repair = _drift(db, slot)
    if repair is None:
        # outra escrita já corrigiu entre a detecção e a transação
        return None
    slot.confirmed_count = repair.true_count
    queue = registration_crud.waitlist(db, slot_id=slot_id)
    for expected, entry in enumerate(queue, start=1):
        entry.waitlist_position = expected
    capacity.check_waitlist_order(e.waitlist_position for e in queue)
    slot.updated_at = datetime.now(timezone.utc)
    db.flush()
    return repair


def audit(db: Session, session_id: int) -> List[SlotRepair]:
    session_crud.get_live(db, session_id)
    repairs: List[SlotRepair] = []
    for slot in session_crud.slots(db, session_id=session_id):
        if _drift(db, slot) is None:
            continue
        repair = run_in_transaction(db, lambda s: _repair_txn(s, slot.id), label="audit")
        if repair is None:
            continue
        repairs.append(repair)
        if repair.count_fixed:
            logger.warning(
                "Contagem divergente na vaga %s: gravado=%s real=%s (corrigido)",
                repair.slot_id, repair.stored_count, repair.true_count,
            )
        if repair.renumbered:
            logger.warning("Fila da vaga %s renumerada (%s entradas)", repair.slot_id, len(repair.renumbered))
        slot_capacity = db.get(Slot, repair.slot_id).capacity
        if slot_capacity is not None and repair.true_count > slot_capacity:
            logger.error(
                "Vaga %s com %s confirmados acima da capacidade %s",
                repair.slot_id, repair.true_count, slot_capacity,
            )
    return repairs
