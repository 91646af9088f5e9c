# slotbook/services/checkin.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from slotbook.core.errors import Forged, NotFound
from slotbook.crud.registration import registration_crud
from slotbook.crud.session import session_crud
from slotbook.models.registration import Registration, RegistrationStatus
from slotbook.models.session import Slot
from slotbook.models.walk_in import WalkIn
from slotbook.services.codes import decode_payload
from slotbook.services.transactions import run_in_transaction

logger = logging.getLogger(__name__)


def _require_checkable(reg: Optional[Registration], registration_id: int, code: str) -> Registration:
    if not reg:
        raise NotFound("Inscrição", registration_id)
    if reg.unique_code != code:
        raise Forged("código não confere com a inscrição", registration_id=registration_id)
    if reg.status != RegistrationStatus.confirmed:
        raise Forged("inscrição não está confirmada", registration_id=registration_id, status=reg.status.value)
    return reg


def verify_checkin(db: Session, payload: str) -> Registration:
    """Confere assinatura (offline) e depois o estado gravado.

    Assinatura/formato inválido -> Forged; id assinado sem inscrição -> NotFound;
    código diferente do gravado ou inscrição não confirmada -> Forged.
    """
    registration_id, code = decode_payload(payload)
    return _require_checkable(registration_crud.get(db, registration_id), registration_id, code)


def _stamp(db: Session, registration_id: int, code: str) -> Registration:
    slot = None
    reg = db.get(Registration, registration_id)
    if reg is not None:
        # slot antes do estado: cancelamento posterior conflita pelo version_id
        slot = db.get(Slot, reg.slot_id, populate_existing=True)
        db.refresh(reg)
    reg = _require_checkable(reg, registration_id, code)
    if reg.checked_in_at is None:
        now = datetime.now(timezone.utc)
        reg.checked_in_at = now
        slot.updated_at = now
        db.flush()
    return reg


def checkin(db: Session, payload: str) -> Registration:
    """Valida o payload escaneado e registra presença (idempotente)."""
    registration_id, code = decode_payload(payload)
    reg = run_in_transaction(db, lambda s: _stamp(s, registration_id, code), label="checkin")
    logger.info("Check-in da inscrição %s", reg.id)
    return reg


def checkin_by_code(db: Session, *, session_id: int, code: str) -> Registration:
    """Check-in digitando o código impresso (ex.: 203-776)."""
    session_crud.get_live(db, session_id)
    code = (code or "").strip()
    reg = registration_crud.get_by_code(db, session_id=session_id, code=code)
    if not reg or reg.status != RegistrationStatus.confirmed:
        raise NotFound("Inscrição", {"session_id": session_id, "code": code})
    reg = run_in_transaction(db, lambda s: _stamp(s, reg.id, code), label="checkin")
    logger.info("Check-in por código da inscrição %s", reg.id)
    return reg


def add_walk_in(
    db: Session,
    *,
    session_id: int,
    name: str,
    notes: Optional[str] = None,
    trainer_id: Optional[int] = None,
    added_by: Optional[int] = None,
) -> WalkIn:
    """Participante avulso, sem inscrição; não mexe na contagem das vagas."""
    def _txn(db: Session) -> WalkIn:
        session_crud.get_live(db, session_id)
        if trainer_id is not None and not session_crud.get_slot(db, session_id=session_id, trainer_id=trainer_id):
            raise NotFound("Vaga do treinador", {"session_id": session_id, "trainer_id": trainer_id})
        walk_in = WalkIn(
            session_id=session_id,
            trainer_id=trainer_id,
            name=name.strip(),
            notes=(notes or "").strip() or None,
            checked_in_at=datetime.now(timezone.utc),
            added_by=added_by,
        )
        db.add(walk_in)
        db.flush()
        return walk_in

    walk_in = run_in_transaction(db, _txn, label="walk_in")
    logger.info("Avulso %s adicionado à sessão %s", walk_in.id, session_id)
    return walk_in
