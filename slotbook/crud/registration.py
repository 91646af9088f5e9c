from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import select, func
from slotbook.crud.base import CRUDBase
from slotbook.models.registration import Registration, RegistrationStatus, ACTIVE_STATUSES

class CRUDRegistration(CRUDBase[Registration]):
    def confirmed_count(self, db: Session, *, slot_id: int) -> int:
        return db.scalar(
            select(func.count()).select_from(Registration)
            .where(Registration.slot_id == slot_id, Registration.status == RegistrationStatus.confirmed)
        ) or 0

    def max_waitlist_position(self, db: Session, *, slot_id: int) -> int:
        return db.scalar(
            select(func.max(Registration.waitlist_position))
            .where(Registration.slot_id == slot_id, Registration.status == RegistrationStatus.waitlisted)
        ) or 0

    def waitlist_length(self, db: Session, *, slot_id: int) -> int:
        return db.scalar(
            select(func.count()).select_from(Registration)
            .where(Registration.slot_id == slot_id, Registration.status == RegistrationStatus.waitlisted)
        ) or 0

    def waitlist(self, db: Session, *, slot_id: int) -> List[Registration]:
        # posição primeiro; criação/id desempatam registros legados
        return list(db.execute(
            select(Registration)
            .where(Registration.slot_id == slot_id, Registration.status == RegistrationStatus.waitlisted)
            .order_by(Registration.waitlist_position, Registration.created_at, Registration.id)
        ).scalars())

    def active_for_session(self, db: Session, *, session_id: int, status: Optional[RegistrationStatus] = None) -> List[Registration]:
        stmt = select(Registration).where(Registration.session_id == session_id)
        if status is not None:
            stmt = stmt.where(Registration.status == status)
        else:
            stmt = stmt.where(Registration.status.in_(ACTIVE_STATUSES))
        return list(db.execute(stmt.order_by(Registration.created_at, Registration.id)).scalars())

    def active_for_slot(self, db: Session, *, slot_id: int) -> List[Registration]:
        return list(db.execute(
            select(Registration)
            .where(Registration.slot_id == slot_id, Registration.status.in_(ACTIVE_STATUSES))
            .order_by(Registration.created_at, Registration.id)
        ).scalars())

    def code_in_use(self, db: Session, code: str) -> bool:
        return db.scalar(
            select(func.count()).select_from(Registration)
            .where(Registration.unique_code == code, Registration.status != RegistrationStatus.cancelled)
        ) > 0

    def get_by_code(self, db: Session, *, session_id: int, code: str) -> Optional[Registration]:
        return db.execute(
            select(Registration).where(
                Registration.session_id == session_id,
                Registration.unique_code == code,
                Registration.status != RegistrationStatus.cancelled,
            )
        ).scalar_one_or_none()

registration_crud = CRUDRegistration(Registration)
