# slotbook/services/codes.py
import base64
import hashlib
import hmac
import io
import logging
import secrets
from typing import Callable, Optional, Tuple

import qrcode  # type: ignore

from slotbook.core.config import settings
from slotbook.core.errors import CodeSpaceExhausted, Forged
from slotbook.crud.registration import registration_crud

logger = logging.getLogger(__name__)

PAYLOAD_PREFIX = "SB1"
SIGNATURE_LENGTH = 20
CODE_SPACE = 1_000_000

CodeProbe = Callable[[str], bool]


def format_code(n: int) -> str:
    digits = f"{n:06d}"
    return f"{digits[:3]}-{digits[3:]}"


def is_reserved(code: str) -> bool:
    # 000-000, 111-111 ... 999-999 ficam de fora (fáceis de chutar/digitar errado)
    digits = code.replace("-", "")
    return len(set(digits)) == 1


def is_valid_code(code: str) -> bool:
    if len(code) != 7 or code[3] != "-":
        return False
    digits = code[:3] + code[4:]
    return digits.isdigit() and not is_reserved(code)


def _sign(registration_id: int, code: str) -> str:
    msg = f"{registration_id}.{code}".encode()
    return hmac.new(settings.SECRET_KEY.encode(), msg, hashlib.sha256).hexdigest()[:SIGNATURE_LENGTH]


def build_payload(registration_id: int, code: str) -> str:
    return f"{PAYLOAD_PREFIX}.{registration_id}.{code}.{_sign(registration_id, code)}"


def decode_payload(payload: str) -> Tuple[int, str]:
    """Valida a assinatura offline e devolve (registration_id, code)."""
    parts = (payload or "").strip().split(".")
    if len(parts) != 4 or parts[0] != PAYLOAD_PREFIX:
        raise Forged("payload de check-in malformado")
    _, raw_id, code, sig = parts
    if not raw_id.isdigit() or not is_valid_code(code):
        raise Forged("payload de check-in malformado")
    registration_id = int(raw_id)
    if not hmac.compare_digest(_sign(registration_id, code), sig):
        raise Forged("assinatura do payload inválida", registration_id=registration_id)
    return registration_id, code


def generate(
    probe: CodeProbe,
    registration_id: int,
    *,
    draw: Optional[Callable[[], int]] = None,
    max_attempts: Optional[int] = None,
) -> Tuple[str, str]:
    """Sorteia um código livre e monta o payload escaneável.

    `probe(code)` deve responder True quando o código já está em uso por uma
    inscrição ativa. Depois de `max_attempts` colisões levanta CodeSpaceExhausted.
    """
    draw = draw or (lambda: secrets.randbelow(CODE_SPACE))
    attempts = max_attempts or settings.CODE_MAX_ATTEMPTS
    for _ in range(attempts):
        code = format_code(draw() % CODE_SPACE)
        if is_reserved(code):
            continue
        if probe(code):
            logger.debug("Colisão de código %s para inscrição %s", code, registration_id)
            continue
        return code, build_payload(registration_id, code)

    logger.error("Espaço de códigos esgotado após %s tentativas (inscrição %s)", attempts, registration_id)
    raise CodeSpaceExhausted("não foi possível gerar um código único", attempts=attempts)


def qr_png(payload: str) -> bytes:
    img = qrcode.make(payload)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def qr_data_uri(payload: str) -> str:
    b64 = base64.b64encode(qr_png(payload)).decode("ascii")
    return f"data:image/png;base64,{b64}"


def issue_code(db, registration) -> str:
    """Gera e grava o código da inscrição; o id já precisa existir (flush feito)."""
    # autoflush está desligado: o probe precisa enxergar cancelamentos pendentes
    db.flush()
    code, payload = generate(lambda c: registration_crud.code_in_use(db, c), registration.id)
    registration.unique_code = code
    return payload
