from typing import Optional
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import ForeignKey, String, Text, DateTime, func
from slotbook.db.base import Base

class WalkIn(Base):
    __tablename__ = "walk_ins"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    session_id: Mapped[int] = mapped_column(ForeignKey("sessions.id"), index=True)
    trainer_id: Mapped[Optional[int]] = mapped_column(ForeignKey("trainers.id"), nullable=True)
    name: Mapped[str] = mapped_column(String(160))
    notes: Mapped[Optional[str]] = mapped_column(Text(), nullable=True)
    checked_in_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    added_by: Mapped[Optional[int]] = mapped_column(ForeignKey("trainers.id"), nullable=True)
