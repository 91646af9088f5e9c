# slotbook/api/v1/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from slotbook.api.deps import get_db
from slotbook.core.security import verify_and_maybe_upgrade
from slotbook.core.tokens import create_access_token
from slotbook.crud.trainer import trainer_crud
from slotbook.models.trainer import TrainerStatus
from slotbook.schemas.trainer import LoginIn, Token

router = APIRouter()

@router.post("/login", response_model=Token)
def login(body: LoginIn, db: Session = Depends(get_db)):
    trainer = trainer_crud.get_by_email(db, body.email)
    if not trainer:
        raise HTTPException(status_code=401, detail="Credenciais inválidas")
    ok, new_hash = verify_and_maybe_upgrade(body.password, trainer.hashed_password)
    if not ok:
        raise HTTPException(status_code=401, detail="Credenciais inválidas")
    # cadastro pendente/rejeitado não entra
    if trainer.status != TrainerStatus.approved:
        raise HTTPException(status_code=403, detail="Cadastro não aprovado")
    if new_hash:
        trainer_crud.update(db, trainer, {"hashed_password": new_hash})
    role = getattr(trainer.role, "value", trainer.role)
    return Token(access_token=create_access_token(sub=str(trainer.id), role=role))
