from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field

class CheckinIn(BaseModel):
    payload: Optional[str] = None
    # alternativa ao QR: código digitado + sessão
    session_id: Optional[int] = None
    code: Optional[str] = Field(None, pattern=r"^\d{3}-\d{3}$")

class CheckinOut(BaseModel):
    registration_id: int
    session_id: int
    trainer_id: int
    name: str
    unique_code: Optional[str] = None
    checked_in_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

class WalkInCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=160)
    notes: Optional[str] = None
    trainer_id: Optional[int] = None

class WalkInOut(BaseModel):
    id: int
    session_id: int
    trainer_id: Optional[int] = None
    name: str
    notes: Optional[str] = None
    checked_in_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
