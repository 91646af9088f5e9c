# tests/conftest.py
import os
import tempfile
from datetime import datetime, timedelta, timezone

_TMP = tempfile.mkdtemp(prefix="slotbook-tests-")
os.environ["DATA_DIR"] = _TMP
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'test.db')}"
os.environ["RUN_MIGRATIONS_ON_STARTUP"] = "false"
os.environ["SECRET_KEY"] = "test-secret"

import pytest
from fastapi.testclient import TestClient

import slotbook.models  # noqa: F401
from slotbook.core.security import hash_password
from slotbook.core.tokens import create_access_token
from slotbook.db.base import Base
from slotbook.db.session import SessionLocal, engine
from slotbook.models.trainer import Trainer, TrainerRole, TrainerStatus
from slotbook.schemas.registration import ContactIn
from slotbook.services import registrations as engine_service

_PASSWORD_HASH = hash_password("senha-forte-123")


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def make_trainer(db, *, email, role=TrainerRole.trainer, status=TrainerStatus.approved, external_id=None):
    trainer = Trainer(
        name=email.split("@")[0].title(),
        email=email,
        hashed_password=_PASSWORD_HASH,
        role=role,
        status=status,
        external_id=external_id,
    )
    db.add(trainer)
    db.commit()
    return trainer


@pytest.fixture
def trainer(db):
    return make_trainer(db, email="ana@academia.com.br", external_id="uid-ana")


@pytest.fixture
def admin(db):
    return make_trainer(db, email="root@academia.com.br", role=TrainerRole.admin)


def contact(n: int) -> ContactIn:
    return ContactIn(name=f"Participante {n}", email=f"p{n}@mail.com", phone=f"1199999{n:04d}")


@pytest.fixture
def make_session(db, trainer):
    def _make(capacity=None, trainer_id=None):
        return engine_service.create_session(
            db,
            title="Funcional",
            training_type="funcional",
            start_at=datetime.now(timezone.utc) + timedelta(days=1),
            duration_minutes=60,
            trainer_id=trainer_id or trainer.id,
            capacity_limit=capacity,
        )
    return _make


def auth_headers(trainer) -> dict:
    role = getattr(trainer.role, "value", trainer.role)
    return {"Authorization": f"Bearer {create_access_token(sub=str(trainer.id), role=role)}"}


@pytest.fixture
def test_client():
    from slotbook.main import api
    with TestClient(api) as c:
        yield c
