import pytest

from slotbook.core.errors import Forged, NotFound
from slotbook.crud.registration import registration_crud
from slotbook.db.session import SessionLocal
from slotbook.services import checkin as checkin_service, codes, registrations as engine

from tests.conftest import contact


def _confirmed(db, session, trainer, n=1):
    return engine.register(db, session_id=session.id, trainer_id=trainer.id, contact=contact(n))


def test_verify_accepts_fresh_payload(db, trainer, make_session):
    session = make_session(capacity=2)
    outcome = _confirmed(db, session, trainer)

    reg = checkin_service.verify_checkin(db, outcome.checkin_payload)
    assert reg.id == outcome.registration.id


def test_verify_rejects_tampered_signature(db, trainer, make_session):
    session = make_session(capacity=2)
    payload = _confirmed(db, session, trainer).checkin_payload
    forged = payload[:-1] + ("0" if payload[-1] != "0" else "1")

    with pytest.raises(Forged):
        checkin_service.verify_checkin(db, forged)


def test_verify_signed_but_unknown_registration(db):
    with pytest.raises(NotFound):
        checkin_service.verify_checkin(db, codes.build_payload(4040, "123-456"))


def test_verify_rejects_payload_after_cancellation(db, trainer, make_session):
    session = make_session(capacity=2)
    outcome = _confirmed(db, session, trainer)
    payload = outcome.checkin_payload
    engine.cancel(db, outcome.registration.id)

    with pytest.raises(Forged):
        checkin_service.verify_checkin(db, payload)


def test_verify_rejects_stale_code(db, trainer, make_session):
    session = make_session(capacity=2)
    outcome = _confirmed(db, session, trainer)
    stale = codes.build_payload(outcome.registration.id, "987-654")

    with pytest.raises(Forged):
        checkin_service.verify_checkin(db, stale)


def test_checkin_is_idempotent(db, trainer, make_session):
    session = make_session(capacity=2)
    payload = _confirmed(db, session, trainer).checkin_payload

    first = checkin_service.checkin(db, payload)
    stamped = first.checked_in_at
    second = checkin_service.checkin(db, payload)

    assert stamped is not None
    assert second.checked_in_at == stamped


def test_checkin_by_typed_code(db, trainer, make_session):
    session = make_session(capacity=2)
    outcome = _confirmed(db, session, trainer)

    reg = checkin_service.checkin_by_code(db, session_id=session.id, code=outcome.registration.unique_code)
    assert reg.checked_in_at is not None
    with pytest.raises(NotFound):
        checkin_service.checkin_by_code(db, session_id=session.id, code="000-001")


def test_walk_in_does_not_touch_slot(db, trainer, make_session):
    session = make_session(capacity=1)
    walk_in = checkin_service.add_walk_in(db, session_id=session.id, name=" Visitante ", trainer_id=trainer.id)

    assert walk_in.name == "Visitante"
    occ = engine.get_occupancy(db, session_id=session.id, trainer_id=trainer.id)
    assert occ.confirmed_count == 0
    with pytest.raises(NotFound):
        checkin_service.add_walk_in(db, session_id=session.id, name="X", trainer_id=9999)


def test_checkin_rechecks_status_cancelled_after_verification(db, trainer, make_session):
    session = make_session(capacity=2)
    outcome = _confirmed(db, session, trainer)
    payload = outcome.checkin_payload
    checkin_service.verify_checkin(db, payload)

    # outra requisição cancela entre a verificação e o carimbo
    other = SessionLocal()
    try:
        engine.cancel(other, outcome.registration.id)
    finally:
        other.close()

    with pytest.raises(Forged):
        checkin_service.checkin(db, payload)
    db.expire_all()
    assert engine.get_registration(db, outcome.registration.id).checked_in_at is None


def test_checkin_by_code_rechecks_status_in_transaction(db, trainer, make_session, monkeypatch):
    session = make_session(capacity=2)
    outcome = _confirmed(db, session, trainer)
    code = outcome.registration.unique_code
    real_get_by_code = registration_crud.get_by_code

    def get_then_cancel(db_, **kwargs):
        reg = real_get_by_code(db_, **kwargs)
        other = SessionLocal()
        try:
            engine.cancel(other, reg.id)
        finally:
            other.close()
        return reg

    monkeypatch.setattr(registration_crud, "get_by_code", get_then_cancel)

    with pytest.raises(Forged):
        checkin_service.checkin_by_code(db, session_id=session.id, code=code)
