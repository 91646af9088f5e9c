from enum import Enum
from typing import Optional
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import ForeignKey, String, Integer, DateTime, Index, func, text
from slotbook.db.base import Base

class RegistrationStatus(str, Enum):
    confirmed="confirmed"
    waitlisted="waitlisted"
    cancelled="cancelled"

ACTIVE_STATUSES = (RegistrationStatus.confirmed, RegistrationStatus.waitlisted)

class Registration(Base):
    __tablename__ = "registrations"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    session_id: Mapped[int] = mapped_column(ForeignKey("sessions.id"), index=True)
    slot_id: Mapped[int] = mapped_column(ForeignKey("slots.id"), index=True)
    trainer_id: Mapped[int] = mapped_column(ForeignKey("trainers.id"))

    name: Mapped[str] = mapped_column(String(160))
    email: Mapped[str] = mapped_column(String(160))
    phone: Mapped[str] = mapped_column(String(30))

    unique_code: Mapped[Optional[str]] = mapped_column(String(7), nullable=True)
    status: Mapped[RegistrationStatus] = mapped_column(default=RegistrationStatus.confirmed)
    waitlist_position: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_by: Mapped[Optional[int]] = mapped_column(ForeignKey("trainers.id"), nullable=True)
    checked_in_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    slot = relationship("Slot")

    __table_args__ = (
        # código único apenas entre inscrições não canceladas
        Index(
            "uq_registrations_active_code", "unique_code", unique=True,
            sqlite_where=text("status != 'cancelled' AND unique_code IS NOT NULL"),
            postgresql_where=text("status != 'cancelled' AND unique_code IS NOT NULL"),
        ),
        Index("ix_registrations_slot_status", "slot_id", "status"),
    )
