# slotbook/services/legacy.py
"""
Normalização dos documentos de sessão antigos.

Dois formatos chegam de fora:

* legado, um treinador só: ``trainerId``, ``capacity`` (null = sem limite),
  ``attendees[]`` e ``waitlist[]`` embutidos no documento;
* multi-treinador: ``trainers: {uid: {capacity (-1 = sem limite), currentCount, ...}}``
  e, opcionalmente, ``registrations[]``.

Ambos viram `NormalizedSession` (uma lista de `SlotSpec`) antes de entrar
no motor. `currentCount` do documento é ignorado: a contagem é recalculada.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from slotbook.core.errors import NotFound
from slotbook.crud.trainer import trainer_crud
from slotbook.models.registration import Registration, RegistrationStatus
from slotbook.models.session import Slot, TrainingSession
from slotbook.services.codes import issue_code
from slotbook.services.transactions import run_in_transaction

logger = logging.getLogger(__name__)

UNLIMITED = -1
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class AttendeeDoc(BaseModel):
    id: Optional[str] = None
    name: str
    email: str = ""
    phone: str = ""
    bookedAt: Optional[datetime] = None

    model_config = {"extra": "ignore"}


class TrainerSlotDoc(BaseModel):
    trainerName: Optional[str] = None
    capacity: int = UNLIMITED
    currentCount: int = 0
    description: Optional[str] = None

    model_config = {"extra": "ignore"}


class RegistrationDoc(BaseModel):
    trainerId: str
    name: str
    email: str = ""
    phone: str = ""
    status: Literal["confirmed", "waitlist", "cancelled"] = "confirmed"
    position: Optional[int] = None
    registeredAt: Optional[datetime] = None

    model_config = {"extra": "ignore"}


class _SessionDocBase(BaseModel):
    title: str
    type: Optional[str] = None
    date: datetime
    duration: int = Field(60, gt=0)

    model_config = {"extra": "ignore"}


class LegacySessionDoc(_SessionDocBase):
    trainerId: str
    capacity: Optional[int] = Field(None, ge=0)
    attendees: List[AttendeeDoc] = []
    waitlist: List[AttendeeDoc] = []


class MultiTrainerSessionDoc(_SessionDocBase):
    trainers: Dict[str, TrainerSlotDoc] = Field(..., min_length=1)
    registrations: List[RegistrationDoc] = []


SessionDoc = Union[LegacySessionDoc, MultiTrainerSessionDoc]


@dataclass
class AttendeeSpec:
    name: str
    email: str
    phone: str
    requested_at: Optional[datetime] = None


@dataclass
class SlotSpec:
    external_trainer_id: str
    capacity: Optional[int]
    description: Optional[str] = None
    confirmed: List[AttendeeSpec] = field(default_factory=list)
    waitlisted: List[AttendeeSpec] = field(default_factory=list)


@dataclass
class NormalizedSession:
    title: str
    training_type: Optional[str]
    start_at: datetime
    duration_minutes: int
    slots: List[SlotSpec]


def parse_document(doc: Dict[str, Any]) -> SessionDoc:
    if doc.get("trainers"):
        return MultiTrainerSessionDoc.model_validate(doc)
    return LegacySessionDoc.model_validate(doc)


def _capacity(value: Optional[int]) -> Optional[int]:
    if value is None or value == UNLIMITED:
        return None
    if value < 0:
        raise ValueError(f"capacidade inválida: {value}")
    return value


def _aware(ts: Optional[datetime]) -> Optional[datetime]:
    if ts is not None and ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def _attendee(a: AttendeeDoc) -> AttendeeSpec:
    return AttendeeSpec(a.name.strip(), a.email.strip().lower(), a.phone.strip(), _aware(a.bookedAt))


def _fit(slot: SlotSpec) -> SlotSpec:
    """Excedente de confirmados (capacidade reduzida) vai para a frente da fila."""
    slot.confirmed.sort(key=lambda a: a.requested_at or _EPOCH)
    if slot.capacity is not None and len(slot.confirmed) > slot.capacity:
        overflow = slot.confirmed[slot.capacity:]
        slot.confirmed = slot.confirmed[:slot.capacity]
        slot.waitlisted = overflow + slot.waitlisted
        logger.warning(
            "Documento legado com %s confirmados acima da capacidade do treinador %s; movidos para a fila",
            len(overflow), slot.external_trainer_id,
        )
    return slot


def normalize(doc: Union[Dict[str, Any], SessionDoc]) -> NormalizedSession:
    parsed = parse_document(doc) if isinstance(doc, dict) else doc

    if isinstance(parsed, LegacySessionDoc):
        slots = [SlotSpec(
            external_trainer_id=parsed.trainerId,
            capacity=_capacity(parsed.capacity),
            confirmed=[_attendee(a) for a in parsed.attendees],
            waitlisted=[_attendee(a) for a in parsed.waitlist],
        )]
    else:
        by_trainer: Dict[str, SlotSpec] = {
            uid: SlotSpec(external_trainer_id=uid, capacity=_capacity(s.capacity), description=s.description)
            for uid, s in parsed.trainers.items()
        }
        waiting: Dict[str, List[RegistrationDoc]] = {uid: [] for uid in by_trainer}
        for r in parsed.registrations:
            if r.trainerId not in by_trainer:
                raise ValueError(f"inscrição aponta para treinador fora da sessão: {r.trainerId}")
            if r.status == "confirmed":
                by_trainer[r.trainerId].confirmed.append(
                    AttendeeSpec(r.name.strip(), r.email.strip().lower(), r.phone.strip(), _aware(r.registeredAt)))
            elif r.status == "waitlist":
                waiting[r.trainerId].append(r)
        for uid, entries in waiting.items():
            # posição do documento primeiro, depois horário
            entries.sort(key=lambda r: (r.position is None, r.position or 0,
                                        _aware(r.registeredAt) or _EPOCH))
            by_trainer[uid].waitlisted = [
                AttendeeSpec(r.name.strip(), r.email.strip().lower(), r.phone.strip(), _aware(r.registeredAt))
                for r in entries
            ]
        for uid, s in parsed.trainers.items():
            if s.currentCount != len(by_trainer[uid].confirmed):
                logger.info("currentCount=%s ignorado para %s (recalculado)", s.currentCount, uid)
        slots = list(by_trainer.values())

    return NormalizedSession(
        title=parsed.title,
        training_type=parsed.type,
        start_at=_aware(parsed.date),
        duration_minutes=parsed.duration,
        slots=[_fit(s) for s in slots],
    )


def import_session(db: Session, doc: Union[Dict[str, Any], SessionDoc], *, created_by: Optional[int] = None) -> TrainingSession:
    normalized = normalize(doc)

    def _txn(db: Session) -> TrainingSession:
        now = datetime.now(timezone.utc)
        session = TrainingSession(
            title=normalized.title,
            training_type=normalized.training_type,
            start_at=normalized.start_at,
            duration_minutes=normalized.duration_minutes,
            created_by=created_by,
            created_at=now,
        )
        db.add(session)
        db.flush()

        for s in normalized.slots:
            trainer = trainer_crud.get_by_external_id(db, s.external_trainer_id)
            if not trainer:
                raise NotFound("Treinador", s.external_trainer_id)
            slot = Slot(session_id=session.id, trainer_id=trainer.id, capacity=s.capacity,
                        confirmed_count=0, description=s.description, joined_at=now)
            db.add(slot)
            db.flush()

            for a in s.confirmed:
                reg = Registration(
                    session_id=session.id, slot_id=slot.id, trainer_id=trainer.id,
                    name=a.name, email=a.email, phone=a.phone,
                    status=RegistrationStatus.confirmed,
                    created_at=a.requested_at or now, confirmed_at=now,
                )
                db.add(reg)
                db.flush()
                issue_code(db, reg)
            slot.confirmed_count = len(s.confirmed)

            for position, a in enumerate(s.waitlisted, start=1):
                db.add(Registration(
                    session_id=session.id, slot_id=slot.id, trainer_id=trainer.id,
                    name=a.name, email=a.email, phone=a.phone,
                    status=RegistrationStatus.waitlisted, waitlist_position=position,
                    created_at=a.requested_at or now,
                ))
        db.flush()
        return session

    session = run_in_transaction(db, _txn, label="import_session")
    logger.info("Sessão legada importada como %s (%s vagas)", session.id, len(normalized.slots))
    return session
