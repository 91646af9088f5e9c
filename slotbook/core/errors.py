# slotbook/core/errors.py
"""
Erros do motor de inscrições.

Cada erro carrega um `code` estável (usado no envelope JSON da API) e o
status HTTP correspondente. `retryable` indica se o chamador pode repetir
a mesma requisição.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class EngineError(Exception):
    code: str = "ENGINE_ERROR"
    http_status: int = 500
    retryable: bool = False

    def __init__(self, message: str = "", **details: Any):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details or None}


class NotFound(EngineError):
    code = "NOT_FOUND"
    http_status = 404

    def __init__(self, entity: str, key: Any, message: Optional[str] = None):
        super().__init__(message or f"{entity} não encontrado", entity=entity, key=key)
        self.entity = entity
        self.key = key


class InvariantViolation(EngineError):
    code = "INVARIANT_VIOLATION"
    http_status = 500


class Contention(EngineError):
    code = "CONTENTION"
    http_status = 409
    retryable = True


class CodeSpaceExhausted(EngineError):
    code = "CODE_SPACE_EXHAUSTED"
    http_status = 503
    retryable = True


class Unavailable(EngineError):
    code = "STORE_UNAVAILABLE"
    http_status = 503
    retryable = True


class Forged(EngineError):
    code = "FORGED_PAYLOAD"
    http_status = 422


class AlreadyExists(EngineError):
    code = "ALREADY_EXISTS"
    http_status = 409
