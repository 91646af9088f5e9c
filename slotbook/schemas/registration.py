from __future__ import annotations
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from slotbook.models.registration import RegistrationStatus


def mask_email(email: Optional[str]) -> str:
    if not email or "@" not in email:
        return ""
    local, domain = email.split("@", 1)
    return f"{local[:1]}***@{domain}"

def mask_phone(phone: Optional[str]) -> str:
    if not phone:
        return ""
    digits = "".join([c for c in phone if c.isdigit()])
    return f"***-***-{digits[-4:]}" if len(digits) >= 4 else "***"


class ContactIn(BaseModel):
    name: str = Field(..., max_length=160)
    email: str = Field(..., max_length=160)
    phone: str = Field(..., max_length=30)

    # a política fina de validação é da UI; aqui só não pode ser vazio
    @field_validator("name", "email", "phone")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("campo obrigatório")
        return v

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()


class CancelByContactIn(BaseModel):
    email: str
    phone: str


class BulkRemoveIn(BaseModel):
    registration_ids: List[int] = Field(..., min_length=1)


class RegistrationPublic(BaseModel):
    id: int
    session_id: int
    trainer_id: int
    status: RegistrationStatus
    waitlist_position: Optional[int] = None
    name: str
    email: str
    phone: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @classmethod
    def masked(cls, reg) -> "RegistrationPublic":
        out = cls.model_validate(reg)
        return out.model_copy(update={"email": mask_email(reg.email), "phone": mask_phone(reg.phone)})


class RegistrationDetail(RegistrationPublic):
    unique_code: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[int] = None
    checked_in_at: Optional[datetime] = None


class SlotOccupancyOut(BaseModel):
    slot_id: int
    trainer_id: int
    confirmed_count: int
    capacity: Optional[int] = None
    waitlist_length: int
    is_full: bool
    available: Optional[int] = None


class RegistrationResult(BaseModel):
    """Resposta do POST de inscrição: código e payload só para confirmados."""
    registration: RegistrationDetail
    occupancy: SlotOccupancyOut
    checkin_payload: Optional[str] = None
    qr_data_uri: Optional[str] = None


class CancellationResult(BaseModel):
    registration: RegistrationPublic
    changed: bool
    promoted_id: Optional[int] = None

    @classmethod
    def from_outcome(cls, outcome) -> "CancellationResult":
        promoted = outcome.promoted
        return cls(
            registration=RegistrationPublic.masked(outcome.registration),
            changed=outcome.changed,
            promoted_id=promoted.id if promoted is not None else None,
        )


class BulkRemoveResult(BaseModel):
    results: List[CancellationResult]
