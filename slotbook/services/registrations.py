# slotbook/services/registrations.py
"""
Motor de inscrições: inscrever, cancelar, remover e excluir sessão.

Máquina de estados de uma inscrição:

    (nova) -> confirmed | waitlisted -> cancelled

A promoção da fila é a troca atômica waitlisted -> confirmed da mesma linha.
Toda operação roda em `run_in_transaction` e encosta no slot (updated_at),
de modo que duas escritas concorrentes na mesma vaga conflitam pelo
version_id e a perdedora é repetida com o estado relido.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from slotbook.core.errors import AlreadyExists, NotFound
from slotbook.crud.registration import registration_crud
from slotbook.crud.session import session_crud
from slotbook.crud.trainer import trainer_crud
from slotbook.models.registration import Registration, RegistrationStatus
from slotbook.models.session import Slot, TrainingSession
from slotbook.models.trainer import TrainerStatus
from slotbook.schemas.registration import ContactIn
from slotbook.services import capacity, waitlist
from slotbook.services.codes import build_payload, issue_code
from slotbook.services.transactions import run_in_transaction

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RegistrationOutcome:
    registration: Registration
    occupancy: capacity.SlotOccupancy

    @property
    def status(self) -> RegistrationStatus:
        return self.registration.status

    @property
    def checkin_payload(self) -> Optional[str]:
        return checkin_payload(self.registration)


@dataclass
class CancellationOutcome:
    registration: Registration
    changed: bool
    promoted: Optional[Registration] = None


def checkin_payload(reg: Registration) -> Optional[str]:
    if reg.status != RegistrationStatus.confirmed or not reg.unique_code:
        return None
    return build_payload(reg.id, reg.unique_code)


# ---------------------------------------------------------------------------
# leituras
# ---------------------------------------------------------------------------

def slot_occupancy(db: Session, slot: Slot) -> capacity.SlotOccupancy:
    return capacity.occupancy(slot, registration_crud.waitlist_length(db, slot_id=slot.id))


def get_occupancy(db: Session, *, session_id: int, trainer_id: int) -> capacity.SlotOccupancy:
    slot = session_crud.require_slot(db, session_id=session_id, trainer_id=trainer_id)
    return slot_occupancy(db, slot)


def get_registration(db: Session, registration_id: int) -> Registration:
    reg = registration_crud.get(db, registration_id)
    if not reg:
        raise NotFound("Inscrição", registration_id)
    return reg


def find_active_by_contact(db: Session, *, session_id: int, email: str, phone: str) -> Registration:
    session_crud.get_live(db, session_id)
    email = (email or "").strip().lower()
    phone = (phone or "").strip()
    for reg in registration_crud.active_for_session(db, session_id=session_id):
        if reg.email.lower() == email and reg.phone == phone:
            return reg
    raise NotFound("Inscrição", {"session_id": session_id, "email": email})


# ---------------------------------------------------------------------------
# sessões e vagas
# ---------------------------------------------------------------------------

def _require_trainer(db: Session, trainer_id: int):
    trainer = trainer_crud.get(db, trainer_id)
    if not trainer or trainer.status != TrainerStatus.approved:
        raise NotFound("Treinador", trainer_id)
    return trainer


def create_session(
    db: Session,
    *,
    title: str,
    start_at: datetime,
    duration_minutes: int,
    trainer_id: int,
    capacity_limit: Optional[int],
    training_type: Optional[str] = None,
    description: Optional[str] = None,
    created_by: Optional[int] = None,
) -> TrainingSession:
    def _txn(db: Session) -> TrainingSession:
        _require_trainer(db, trainer_id)
        now = _now()
        session = TrainingSession(
            title=title,
            training_type=training_type,
            start_at=start_at,
            duration_minutes=duration_minutes,
            created_by=created_by if created_by is not None else trainer_id,
            created_at=now,
        )
        db.add(session)
        db.flush()
        db.add(Slot(session_id=session.id, trainer_id=trainer_id, capacity=capacity_limit,
                    confirmed_count=0, description=description, joined_at=now))
        db.flush()
        return session

    session = run_in_transaction(db, _txn, label="create_session")
    logger.info("Sessão %s criada pelo treinador %s", session.id, trainer_id)
    return session


def add_slot(
    db: Session,
    *,
    session_id: int,
    trainer_id: int,
    capacity_limit: Optional[int],
    description: Optional[str] = None,
) -> Slot:
    def _txn(db: Session) -> Slot:
        session = session_crud.get_live(db, session_id)
        _require_trainer(db, trainer_id)
        if session_crud.get_slot(db, session_id=session_id, trainer_id=trainer_id):
            raise AlreadyExists("Treinador já possui vaga nesta sessão",
                                session_id=session_id, trainer_id=trainer_id)
        slot = Slot(session_id=session.id, trainer_id=trainer_id, capacity=capacity_limit,
                    confirmed_count=0, description=description, joined_at=_now())
        db.add(slot)
        session.updated_at = _now()
        db.flush()
        return slot

    slot = run_in_transaction(db, _txn, label="add_slot")
    logger.info("Treinador %s entrou na sessão %s (capacidade %s)", trainer_id, session_id, capacity_limit)
    return slot


# ---------------------------------------------------------------------------
# inscrição / cancelamento
# ---------------------------------------------------------------------------

def _reconcile_count(db: Session, slot: Slot) -> int:
    """Acerta confirmed_count pela contagem real antes de decidir; roda dentro da transação da escrita."""
    true_count = registration_crud.confirmed_count(db, slot_id=slot.id)
    if true_count != slot.confirmed_count:
        logger.warning(
            "Contagem divergente na vaga %s: gravado=%s real=%s (corrigido na escrita)",
            slot.id, slot.confirmed_count, true_count,
        )
        slot.confirmed_count = true_count
    return true_count


def register(db: Session, *, session_id: int, trainer_id: int, contact: ContactIn) -> RegistrationOutcome:
    """Vaga livre -> confirmed com código; vaga cheia -> waitlisted no fim da fila.

    Vaga cheia não é erro: entrar na fila é sucesso.
    """
    def _txn(db: Session):
        slot = session_crud.require_slot(db, session_id=session_id, trainer_id=trainer_id)
        _reconcile_count(db, slot)
        now = _now()
        reg = Registration(
            session_id=session_id,
            slot_id=slot.id,
            trainer_id=trainer_id,
            name=contact.name,
            email=contact.email,
            phone=contact.phone,
            created_at=now,
        )
        slot.updated_at = now
        if capacity.is_full(slot):
            reg.status = RegistrationStatus.waitlisted
            reg.waitlist_position = registration_crud.max_waitlist_position(db, slot_id=slot.id) + 1
            db.add(reg)
        else:
            reg.status = RegistrationStatus.confirmed
            reg.confirmed_at = now
            slot.confirmed_count = capacity.apply_delta(slot, +1)
            db.add(reg)
            db.flush()
            issue_code(db, reg)
        db.flush()
        return reg, slot

    reg, slot = run_in_transaction(db, _txn, label="register")
    if reg.status == RegistrationStatus.confirmed:
        logger.info("Inscrição %s confirmada na vaga %s (código %s)", reg.id, slot.id, reg.unique_code)
    else:
        logger.info("Inscrição %s na fila da vaga %s, posição %s", reg.id, slot.id, reg.waitlist_position)
    return RegistrationOutcome(registration=reg, occupancy=slot_occupancy(db, slot))


def _cancel_txn(db: Session, registration_id: int, actor: Optional[int]):
    reg = db.get(Registration, registration_id)
    if not reg:
        raise NotFound("Inscrição", registration_id)
    if reg.status == RegistrationStatus.cancelled:
        return reg, False, None

    slot = db.get(Slot, reg.slot_id)
    _reconcile_count(db, slot)
    previous, position = reg.status, reg.waitlist_position
    now = _now()
    reg.status = RegistrationStatus.cancelled
    reg.waitlist_position = None
    reg.cancelled_at = now
    reg.cancelled_by = actor
    slot.updated_at = now

    promoted = None
    if previous == RegistrationStatus.confirmed:
        slot.confirmed_count = capacity.apply_delta(slot, -1)
        db.flush()
        promoted = waitlist.promote_next(db, slot)
    else:
        waitlist.close_gap(db, slot, position)
    db.flush()
    return reg, True, promoted


def cancel(db: Session, registration_id: int, *, actor: Optional[int] = None) -> CancellationOutcome:
    """Idempotente: cancelar de novo devolve sucesso sem efeito colateral."""
    reg, changed, promoted = run_in_transaction(
        db, lambda s: _cancel_txn(s, registration_id, actor), label="cancel"
    )
    if changed:
        logger.info("Inscrição %s cancelada%s", reg.id, f" por {actor}" if actor else "")
    if promoted is not None:
        logger.info("Vaga liberada por %s ocupada pela inscrição %s", reg.id, promoted.id)
    return CancellationOutcome(registration=reg, changed=changed, promoted=promoted)


def remove(db: Session, registration_id: int, *, actor: int) -> CancellationOutcome:
    """Cancelamento administrativo (treinador/admin). Autorização fica na API."""
    return cancel(db, registration_id, actor=actor)


def remove_many(db: Session, registration_ids: Iterable[int], *, actor: int) -> List[CancellationOutcome]:
    # uma transação por inscrição: cada vaga liberada promove no máximo uma pessoa
    return [remove(db, rid, actor=actor) for rid in registration_ids]


def delete_session(db: Session, session_id: int, *, actor: Optional[int] = None) -> int:
    """Cancela todas as inscrições ativas (sem promover) e exclui a sessão."""
    def _txn(db: Session) -> int:
        session = session_crud.get_live(db, session_id)
        now = _now()
        cancelled = 0
        for slot in session_crud.slots(db, session_id=session_id):
            for reg in registration_crud.active_for_slot(db, slot_id=slot.id):
                reg.status = RegistrationStatus.cancelled
                reg.waitlist_position = None
                reg.cancelled_at = now
                reg.cancelled_by = actor
                cancelled += 1
            if slot.confirmed_count:
                logger.debug("Zerando vaga %s (%s confirmados)", slot.id, slot.confirmed_count)
            slot.confirmed_count = 0
            slot.updated_at = now
        session.deleted_at = now
        session.updated_at = now
        db.flush()
        return cancelled

    cancelled = run_in_transaction(db, _txn, label="delete_session")
    logger.info("Sessão %s excluída; %s inscrições canceladas", session_id, cancelled)
    return cancelled
