# slotbook/api/v1/checkin.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from slotbook.api.deps import get_db, get_current_trainer
from slotbook.models.registration import Registration
from slotbook.schemas.checkin import CheckinIn, CheckinOut
from slotbook.services import checkin as checkin_service

router = APIRouter()

def _out(reg: Registration) -> CheckinOut:
    return CheckinOut(
        registration_id=reg.id, session_id=reg.session_id, trainer_id=reg.trainer_id,
        name=reg.name, unique_code=reg.unique_code, checked_in_at=reg.checked_in_at,
    )

@router.post("/verify", response_model=CheckinOut)
def verify(body: CheckinIn, db: Session = Depends(get_db), _ = Depends(get_current_trainer)):
    if not body.payload:
        raise HTTPException(status_code=400, detail="payload obrigatório")
    return _out(checkin_service.verify_checkin(db, body.payload))

@router.post("/", response_model=CheckinOut)
def checkin(body: CheckinIn, db: Session = Depends(get_db), _ = Depends(get_current_trainer)):
    if body.payload:
        return _out(checkin_service.checkin(db, body.payload))
    if body.session_id is not None and body.code:
        return _out(checkin_service.checkin_by_code(db, session_id=body.session_id, code=body.code))
    raise HTTPException(status_code=400, detail="Informe payload ou session_id + code")
