# slotbook/api/v1/registrations.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from slotbook.api.deps import get_db, get_current_trainer, get_optional_trainer
from slotbook.schemas.registration import (
    BulkRemoveIn, BulkRemoveResult, CancellationResult, RegistrationDetail, RegistrationPublic,
)
from slotbook.services import registrations as engine
from slotbook.services.codes import qr_png

router = APIRouter()

@router.get("/{registration_id}", response_model=None)
def get_registration(registration_id: int, db: Session = Depends(get_db), trainer = Depends(get_optional_trainer)):
    reg = engine.get_registration(db, registration_id)
    # anônimo vê contato mascarado (LGPD)
    if trainer is None:
        return RegistrationPublic.masked(reg)
    return RegistrationDetail.model_validate(reg)

@router.delete("/{registration_id}", response_model=CancellationResult)
def remove_registration(registration_id: int, db: Session = Depends(get_db), trainer = Depends(get_current_trainer)):
    return CancellationResult.from_outcome(engine.remove(db, registration_id, actor=trainer.id))

@router.post("/bulk-remove", response_model=BulkRemoveResult)
def bulk_remove(body: BulkRemoveIn, db: Session = Depends(get_db), trainer = Depends(get_current_trainer)):
    outcomes = engine.remove_many(db, body.registration_ids, actor=trainer.id)
    return BulkRemoveResult(results=[CancellationResult.from_outcome(o) for o in outcomes])

@router.get("/{registration_id}/qr.png")
def registration_qr(registration_id: int, code: str = Query(..., pattern=r"^\d{3}-\d{3}$"), db: Session = Depends(get_db)):
    reg = engine.get_registration(db, registration_id)
    payload: Optional[str] = engine.checkin_payload(reg)
    # quem não tem o código não consegue o QR
    if payload is None or reg.unique_code != code:
        raise HTTPException(status_code=404, detail="Inscrição não encontrada")
    return Response(content=qr_png(payload), media_type="image/png")
