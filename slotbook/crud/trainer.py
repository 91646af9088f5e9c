from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy import select, func
from slotbook.crud.base import CRUDBase
from slotbook.models.trainer import Trainer

class CRUDTrainer(CRUDBase[Trainer]):
    def get_by_email(self, db: Session, email: str) -> Optional[Trainer]:
        return db.execute(
            select(Trainer).where(func.lower(Trainer.email) == (email or "").strip().lower())
        ).scalar_one_or_none()

    def get_by_external_id(self, db: Session, external_id: str) -> Optional[Trainer]:
        return db.execute(select(Trainer).where(Trainer.external_id == external_id)).scalar_one_or_none()

trainer_crud = CRUDTrainer(Trainer)
