# slotbook/api/v1/sessions.py
from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from slotbook.api.deps import get_db, get_current_trainer
from slotbook.core.errors import EngineError, NotFound
from slotbook.core.rbac import require_roles, ROLE_ADMIN
from slotbook.crud.registration import registration_crud
from slotbook.crud.session import session_crud
from slotbook.models.registration import RegistrationStatus
from slotbook.schemas.checkin import WalkInCreate, WalkInOut
from slotbook.schemas.registration import (
    CancelByContactIn, CancellationResult, ContactIn, RegistrationDetail,
    RegistrationResult, SlotOccupancyOut,
)
from slotbook.schemas.session import (
    DeleteSessionResult, Session as SessionOut, SessionCreate, SessionDetail, SessionImport, SlotCreate, SlotOut,
)
from slotbook.services import auditor, checkin as checkin_service, legacy, registrations as engine
from slotbook.services.capacity import SlotOccupancy
from slotbook.services.codes import qr_data_uri

logger = logging.getLogger(__name__)

router = APIRouter()

def _occupancy_out(occ: SlotOccupancy) -> SlotOccupancyOut:
    return SlotOccupancyOut(
        slot_id=occ.slot_id, trainer_id=occ.trainer_id, confirmed_count=occ.confirmed_count,
        capacity=occ.capacity, waitlist_length=occ.waitlist_length, is_full=occ.is_full, available=occ.available,
    )

def _target_trainer_id(trainer, requested: Optional[int]) -> int:
    # só admin age em nome de outro treinador
    if requested is None or requested == trainer.id:
        return trainer.id
    if not trainer.is_admin:
        raise HTTPException(status_code=403, detail="Somente admin pode agir por outro treinador")
    return requested

@router.get("/", response_model=List[SessionOut])
def list_sessions(skip: int = 0, limit: int = Query(100, le=500), db: Session = Depends(get_db)):
    return session_crud.list_live(db, skip=skip, limit=limit)

@router.post("/", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
def create_session(body: SessionCreate, db: Session = Depends(get_db), trainer = Depends(get_current_trainer)):
    return engine.create_session(
        db,
        title=body.title,
        training_type=body.training_type,
        start_at=body.start_at,
        duration_minutes=body.duration_minutes,
        trainer_id=_target_trainer_id(trainer, body.trainer_id),
        capacity_limit=body.capacity,
        description=body.description,
        created_by=trainer.id,
    )

@router.post("/import", response_model=SessionOut, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_roles(ROLE_ADMIN))])
def import_session(body: SessionImport, db: Session = Depends(get_db), trainer = Depends(get_current_trainer)):
    try:
        return legacy.import_session(db, body.document, created_by=trainer.id)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

@router.get("/{session_id}", response_model=SessionDetail)
def get_session(session_id: int, db: Session = Depends(get_db)):
    session = session_crud.get_live(db, session_id)
    repaired: List[int] = []
    try:
        repaired = [r.slot_id for r in auditor.audit(db, session_id)]
    except NotFound:
        raise
    except EngineError as exc:
        # auditoria nunca bloqueia a leitura; a próxima passada corrige
        logger.warning("Auditoria da sessão %s adiada: %s", session_id, exc)
    slots = [_occupancy_out(engine.slot_occupancy(db, s)) for s in session_crud.slots(db, session_id=session_id)]
    return SessionDetail(
        id=session.id, title=session.title, training_type=session.training_type, start_at=session.start_at,
        duration_minutes=session.duration_minutes, created_by=session.created_by, created_at=session.created_at,
        slots=slots, repaired_slots=repaired,
    )

@router.delete("/{session_id}", response_model=DeleteSessionResult)
def delete_session(session_id: int, db: Session = Depends(get_db), trainer = Depends(get_current_trainer)):
    session = session_crud.get_live(db, session_id)
    if session.created_by != trainer.id and not trainer.is_admin:
        raise HTTPException(status_code=403, detail="Somente o criador ou admin pode excluir a sessão")
    cancelled = engine.delete_session(db, session_id, actor=trainer.id)
    return DeleteSessionResult(session_id=session_id, cancelled=cancelled)

@router.post("/{session_id}/slots", response_model=SlotOut, status_code=status.HTTP_201_CREATED)
def add_slot(session_id: int, body: SlotCreate, db: Session = Depends(get_db), trainer = Depends(get_current_trainer)):
    return engine.add_slot(
        db,
        session_id=session_id,
        trainer_id=_target_trainer_id(trainer, body.trainer_id),
        capacity_limit=body.capacity,
        description=body.description,
    )

@router.get("/{session_id}/slots/{trainer_id}/occupancy", response_model=SlotOccupancyOut)
def slot_occupancy(session_id: int, trainer_id: int, db: Session = Depends(get_db)):
    return _occupancy_out(engine.get_occupancy(db, session_id=session_id, trainer_id=trainer_id))

@router.post("/{session_id}/slots/{trainer_id}/registrations", response_model=RegistrationResult,
             status_code=status.HTTP_201_CREATED)
def register(session_id: int, trainer_id: int, body: ContactIn, db: Session = Depends(get_db)):
    outcome = engine.register(db, session_id=session_id, trainer_id=trainer_id, contact=body)
    payload = outcome.checkin_payload
    return RegistrationResult(
        registration=RegistrationDetail.model_validate(outcome.registration),
        occupancy=_occupancy_out(outcome.occupancy),
        checkin_payload=payload,
        qr_data_uri=qr_data_uri(payload) if payload else None,
    )

@router.post("/{session_id}/cancellations", response_model=CancellationResult)
def cancel_by_contact(session_id: int, body: CancelByContactIn, db: Session = Depends(get_db)):
    reg = engine.find_active_by_contact(db, session_id=session_id, email=body.email, phone=body.phone)
    return CancellationResult.from_outcome(engine.cancel(db, reg.id))

@router.get("/{session_id}/registrations", response_model=List[RegistrationDetail])
def list_registrations(
    session_id: int,
    status: Optional[RegistrationStatus] = Query(None),
    db: Session = Depends(get_db),
    _ = Depends(get_current_trainer),
):
    session_crud.get_live(db, session_id)
    return registration_crud.active_for_session(db, session_id=session_id, status=status)

@router.post("/{session_id}/walk-ins", response_model=WalkInOut, status_code=status.HTTP_201_CREATED)
def add_walk_in(session_id: int, body: WalkInCreate, db: Session = Depends(get_db), trainer = Depends(get_current_trainer)):
    return checkin_service.add_walk_in(
        db, session_id=session_id, name=body.name, notes=body.notes,
        trainer_id=body.trainer_id, added_by=trainer.id,
    )
