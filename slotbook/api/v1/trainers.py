# slotbook/api/v1/trainers.py
from __future__ import annotations
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from slotbook.api.deps import get_db, get_current_trainer
from slotbook.core.rbac import require_roles, ROLE_ADMIN
from slotbook.core.security import hash_password
from slotbook.crud.trainer import trainer_crud
from slotbook.models.trainer import TrainerRole, TrainerStatus
from slotbook.schemas.trainer import TrainerCreate, TrainerOut, TrainerStatusUpdate

router = APIRouter()

@router.get("/me", response_model=TrainerOut)
def me(trainer = Depends(get_current_trainer)):
    return trainer

@router.get("/", response_model=List[TrainerOut], dependencies=[Depends(require_roles(ROLE_ADMIN))])
def list_trainers(skip: int = 0, limit: int = 100, db: Session = Depends(get_db)):
    return trainer_crud.get_multi(db, skip=skip, limit=limit)

@router.post("/", response_model=TrainerOut, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(require_roles(ROLE_ADMIN))])
def create_trainer(body: TrainerCreate, db: Session = Depends(get_db)):
    if trainer_crud.get_by_email(db, body.email):
        raise HTTPException(status_code=409, detail="E-mail já cadastrado")
    # criado pelo admin já nasce aprovado
    return trainer_crud.create(db, {
        "name": body.name.strip(),
        "email": str(body.email).lower(),
        "phone": body.phone,
        "description": body.description,
        "hashed_password": hash_password(body.password),
        "role": TrainerRole(body.role),
        "status": TrainerStatus.approved,
        "external_id": body.external_id,
    })

@router.patch("/{trainer_id}/status", response_model=TrainerOut,
              dependencies=[Depends(require_roles(ROLE_ADMIN))])
def update_trainer_status(trainer_id: int, body: TrainerStatusUpdate, db: Session = Depends(get_db)):
    trainer = trainer_crud.get(db, trainer_id)
    if not trainer:
        raise HTTPException(status_code=404, detail="Treinador não encontrado")
    return trainer_crud.update(db, trainer, {"status": TrainerStatus(body.status)})
