from enum import Enum
from typing import Optional
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, DateTime, func
from slotbook.db.base import Base

class TrainerRole(str, Enum):
    trainer="trainer"
    admin="admin"

class TrainerStatus(str, Enum):
    pending="pending"
    approved="approved"
    rejected="rejected"

class Trainer(Base):
    __tablename__ = "trainers"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(160))
    email: Mapped[str] = mapped_column(String(160), unique=True, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text(), nullable=True)
    hashed_password: Mapped[str] = mapped_column(String(255))
    role: Mapped[TrainerRole] = mapped_column(default=TrainerRole.trainer)
    status: Mapped[TrainerStatus] = mapped_column(default=TrainerStatus.pending)
    # uid do documento legado (importação de sessões antigas)
    external_id: Mapped[Optional[str]] = mapped_column(String(64), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    @property
    def is_admin(self) -> bool:
        return self.role == TrainerRole.admin
