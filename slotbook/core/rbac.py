# slotbook/core/rbac.py
from fastapi import Depends, HTTPException, status
from slotbook.api.deps import get_current_trainer

ROLE_ADMIN = "admin"

def _role_name(trainer) -> str:
    role = trainer.role
    return getattr(role, "value", role)

def require_roles(*roles: str):
    allowed = set(roles)
    def dep(trainer = Depends(get_current_trainer)):
        if _role_name(trainer) not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return trainer
    return dep

