from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from slotbook.core.errors import Contention, NotFound, Unavailable
from slotbook.crud.registration import registration_crud
from slotbook.crud.session import session_crud
from slotbook.db.session import SessionLocal
from slotbook.models.registration import RegistrationStatus
from slotbook.models.session import Slot
from slotbook.services import registrations as engine
from slotbook.services.transactions import run_in_transaction

from tests.conftest import contact


def test_commits_on_success():
    db = MagicMock()
    assert run_in_transaction(db, lambda s: "ok") == "ok"
    db.commit.assert_called_once()
    db.rollback.assert_not_called()


def test_retries_stale_writes_then_succeeds():
    db = MagicMock()
    fn = MagicMock(side_effect=[StaleDataError("versão mudou"), "ok"])

    assert run_in_transaction(db, fn, attempts=3) == "ok"
    assert fn.call_count == 2
    assert db.rollback.call_count == 1


def test_gives_up_with_contention():
    db = MagicMock()
    fn = MagicMock(side_effect=IntegrityError("insert", {}, Exception("unique")))

    with pytest.raises(Contention) as exc:
        run_in_transaction(db, fn, label="register", attempts=3)
    assert fn.call_count == 3
    assert exc.value.retryable
    assert exc.value.details["operation"] == "register"


def test_store_failure_is_unavailable_without_retry():
    db = MagicMock()
    fn = MagicMock(side_effect=OperationalError("select", {}, Exception("database is locked")))

    with pytest.raises(Unavailable):
        run_in_transaction(db, fn, attempts=3)
    assert fn.call_count == 1
    db.rollback.assert_called_once()


def test_engine_errors_are_not_retried():
    db = MagicMock()
    fn = MagicMock(side_effect=NotFound("Sessão", 1))

    with pytest.raises(NotFound):
        run_in_transaction(db, fn, attempts=3)
    assert fn.call_count == 1
    db.commit.assert_not_called()


# --- conflito real entre duas sessões no version_id da vaga ---------------

def _slot_of(db, session, trainer):
    return session_crud.require_slot(db, session_id=session.id, trainer_id=trainer.id)


def _concurrent_touch(slot_id):
    other = SessionLocal()
    try:
        other.get(Slot, slot_id).updated_at = datetime.now(timezone.utc)
        other.commit()
    finally:
        other.close()


def test_stale_slot_write_is_retried_with_fresh_state(db, trainer, make_session):
    slot_id = _slot_of(db, make_session(capacity=3), trainer).id
    seen = []

    def txn(s):
        slot = s.get(Slot, slot_id)
        seen.append(slot.version_id)
        if len(seen) == 1:
            _concurrent_touch(slot_id)
        slot.updated_at = datetime.now(timezone.utc)
        s.flush()
        return slot.version_id

    s = SessionLocal()
    try:
        final_version = run_in_transaction(s, txn, label="touch", attempts=3)
    finally:
        s.close()

    assert len(seen) == 2
    assert seen[1] > seen[0]
    assert final_version == seen[1] + 1


def test_persistent_competitor_ends_in_contention(db, trainer, make_session):
    slot_id = _slot_of(db, make_session(capacity=3), trainer).id
    calls = []

    def txn(s):
        calls.append(1)
        slot = s.get(Slot, slot_id)
        _concurrent_touch(slot_id)
        slot.updated_at = datetime.now(timezone.utc)
        s.flush()

    s = SessionLocal()
    try:
        with pytest.raises(Contention) as exc:
            run_in_transaction(s, txn, label="touch", attempts=2)
    finally:
        s.close()

    assert len(calls) == 2
    assert exc.value.details["attempts"] == 2


def test_interleaved_register_on_last_seat_goes_to_waitlist(db, trainer, make_session, monkeypatch):
    session = make_session(capacity=1)
    real_require_slot = session_crud.require_slot
    injected = []

    def require_slot_then_compete(db_, **kwargs):
        slot = real_require_slot(db_, **kwargs)
        if not injected:
            injected.append(1)
            other = SessionLocal()
            try:
                engine.register(other, session_id=session.id, trainer_id=trainer.id, contact=contact(1))
            finally:
                other.close()
        return slot

    monkeypatch.setattr(session_crud, "require_slot", require_slot_then_compete)

    s = SessionLocal()
    try:
        outcome = engine.register(s, session_id=session.id, trainer_id=trainer.id, contact=contact(2))
        assert outcome.status == RegistrationStatus.waitlisted
        assert outcome.registration.waitlist_position == 1
    finally:
        s.close()

    db.expire_all()
    slot = _slot_of(db, session, trainer)
    assert slot.confirmed_count == 1
    assert registration_crud.confirmed_count(db, slot_id=slot.id) == 1
