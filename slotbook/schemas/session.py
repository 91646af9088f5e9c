from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from slotbook.schemas.registration import SlotOccupancyOut

# ---------------------------
# Session Schemas
# ---------------------------

class SessionBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    training_type: Optional[str] = None
    start_at: datetime
    duration_minutes: int = Field(60, gt=0, le=24 * 60)

    @field_validator("start_at")
    @classmethod
    def _aware(cls, v: datetime) -> datetime:
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)

class SessionCreate(SessionBase):
    # capacidade None = sem limite
    capacity: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None
    trainer_id: Optional[int] = None  # admin pode criar em nome de outro treinador

class SlotCreate(BaseModel):
    capacity: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None
    trainer_id: Optional[int] = None

class SlotOut(BaseModel):
    id: int
    trainer_id: int
    capacity: Optional[int] = None
    confirmed_count: int
    description: Optional[str] = None

    model_config = {"from_attributes": True}

class Session(SessionBase):
    id: int
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

class SessionDetail(Session):
    slots: List[SlotOccupancyOut] = []
    repaired_slots: List[int] = []

class SessionImport(BaseModel):
    document: Dict[str, Any]

class DeleteSessionResult(BaseModel):
    session_id: int
    cancelled: int
