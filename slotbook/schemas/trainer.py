from __future__ import annotations
from typing import Literal, Optional
from pydantic import BaseModel, EmailStr, Field
from slotbook.models.trainer import TrainerRole, TrainerStatus

class TrainerCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    description: Optional[str] = None
    password: str = Field(min_length=8, max_length=128)
    role: Literal["trainer", "admin"] = "trainer"
    external_id: Optional[str] = None

class TrainerOut(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    description: Optional[str] = None
    role: TrainerRole
    status: TrainerStatus
    external_id: Optional[str] = None

    model_config = {"from_attributes": True}

class TrainerStatusUpdate(BaseModel):
    status: Literal["pending", "approved", "rejected"]

class LoginIn(BaseModel):
    email: str
    password: str

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
