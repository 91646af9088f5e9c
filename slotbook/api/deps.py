from typing import Optional
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from slotbook.db.session import get_db
from slotbook.models.trainer import Trainer, TrainerStatus
from slotbook.core.tokens import decode_access

# ----------------------------------------------------------------------
# Lê o Bearer do header Authorization (sem usar OAuth2PasswordBearer)
# ----------------------------------------------------------------------
def get_bearer_token(authorization: str = Header(None, alias="Authorization")) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid Authorization header")
    return parts[1]

def _trainer_from_token(db: Session, token: str) -> Optional[Trainer]:
    payload = decode_access(token)
    if not payload:
        return None
    try:
        trainer = db.get(Trainer, int(payload["sub"]))
    except (TypeError, ValueError):
        return None
    if not trainer or trainer.status != TrainerStatus.approved:
        return None
    return trainer

def get_current_trainer(
    token: str = Depends(get_bearer_token),
    db: Session = Depends(get_db),
) -> Trainer:
    trainer = _trainer_from_token(db, token)
    if not trainer:
        raise HTTPException(status_code=401, detail="Invalid token")
    return trainer

# ----------------------------------------------------------------------
# Participantes são anônimos: o token é opcional e só libera dados completos
# ----------------------------------------------------------------------
def get_optional_trainer(
    authorization: str = Header(None, alias="Authorization"),
    db: Session = Depends(get_db),
) -> Optional[Trainer]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return _trainer_from_token(db, parts[1])
