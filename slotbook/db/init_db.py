# slotbook/db/init_db.py
import logging

from sqlalchemy.orm import Session

from slotbook.core.config import settings
from slotbook.core.security import hash_password
from slotbook.crud.trainer import trainer_crud
from slotbook.models.trainer import Trainer, TrainerRole, TrainerStatus

logger = logging.getLogger(__name__)

def init_db(db: Session) -> Trainer:
    """Garante um admin aprovado para o primeiro login."""
    admin = trainer_crud.get_by_email(db, settings.SEED_ADMIN_EMAIL)
    if not admin:
        admin = Trainer(
            name="Admin",
            email=settings.SEED_ADMIN_EMAIL.strip().lower(),
            hashed_password=hash_password(settings.SEED_ADMIN_PASSWORD),
            role=TrainerRole.admin,
            status=TrainerStatus.approved,
        )
        db.add(admin)
        db.commit()
        logger.info("Admin inicial criado: %s", admin.email)
    return admin
