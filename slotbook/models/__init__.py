# slotbook/models/__init__.py
# Carrega os módulos para registrar as tabelas no metadata
from slotbook.models.trainer import Trainer, TrainerRole, TrainerStatus  # noqa: F401
from slotbook.models.session import TrainingSession, Slot  # noqa: F401
from slotbook.models.registration import Registration, RegistrationStatus  # noqa: F401
from slotbook.models.walk_in import WalkIn  # noqa: F401
from slotbook.models.tokens import IdempotencyKey  # noqa: F401
