from typing import Optional, List
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Text, Integer, ForeignKey, DateTime, UniqueConstraint, CheckConstraint, func
from slotbook.db.base import Base

class TrainingSession(Base):
    __tablename__ = "sessions"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200))
    training_type: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    duration_minutes: Mapped[int] = mapped_column(Integer, default=60)
    created_by: Mapped[Optional[int]] = mapped_column(ForeignKey("trainers.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    # exclusão lógica: inscrições canceladas continuam apontando para a sessão
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    slots: Mapped[List["Slot"]] = relationship(back_populates="session", order_by="Slot.id")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

class Slot(Base):
    """Vaga de um treinador dentro de uma sessão.

    `capacity` NULL significa sem limite. `confirmed_count` só é alterado pelo
    motor de inscrições e pelo auditor; `version_id` detecta escrita concorrente.
    """
    __tablename__ = "slots"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    session_id: Mapped[int] = mapped_column(ForeignKey("sessions.id"), index=True)
    trainer_id: Mapped[int] = mapped_column(ForeignKey("trainers.id"))
    capacity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    confirmed_count: Mapped[int] = mapped_column(Integer, default=0)
    description: Mapped[Optional[str]] = mapped_column(Text(), nullable=True)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    session: Mapped[TrainingSession] = relationship(back_populates="slots")
    trainer = relationship("Trainer")

    __mapper_args__ = {"version_id_col": version_id}
    __table_args__ = (
        UniqueConstraint("session_id", "trainer_id", name="uq_slot_session_trainer"),
        CheckConstraint("confirmed_count >= 0", name="confirmed_non_negative"),
        CheckConstraint("capacity IS NULL OR capacity >= 0", name="capacity_non_negative"),
    )
