from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import select
from slotbook.core.errors import NotFound
from slotbook.crud.base import CRUDBase
from slotbook.models.session import TrainingSession, Slot

class CRUDSession(CRUDBase[TrainingSession]):
    def get_live(self, db: Session, session_id: int) -> TrainingSession:
        """Sessão não excluída ou NotFound."""
        obj = db.get(TrainingSession, session_id)
        if not obj or obj.is_deleted:
            raise NotFound("Sessão", session_id)
        return obj

    def list_live(self, db: Session, *, skip: int = 0, limit: int = 100) -> List[TrainingSession]:
        return list(db.execute(
            select(TrainingSession)
            .where(TrainingSession.deleted_at.is_(None))
            .order_by(TrainingSession.start_at, TrainingSession.id)
            .offset(skip).limit(limit)
        ).scalars())

    def get_slot(self, db: Session, *, session_id: int, trainer_id: int) -> Optional[Slot]:
        return db.execute(
            select(Slot).where(Slot.session_id == session_id, Slot.trainer_id == trainer_id)
        ).scalar_one_or_none()

    def require_slot(self, db: Session, *, session_id: int, trainer_id: int) -> Slot:
        self.get_live(db, session_id)
        slot = self.get_slot(db, session_id=session_id, trainer_id=trainer_id)
        if not slot:
            raise NotFound("Vaga do treinador", {"session_id": session_id, "trainer_id": trainer_id})
        return slot

    def slots(self, db: Session, *, session_id: int) -> List[Slot]:
        return list(db.execute(select(Slot).where(Slot.session_id == session_id).order_by(Slot.id)).scalars())

session_crud = CRUDSession(TrainingSession)
