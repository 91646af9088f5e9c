from hashlib import sha256
from typing import Callable

from sqlalchemy import select
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from slotbook.models.tokens import IdempotencyKey

class IdempotencyMiddleware(BaseHTTPMiddleware):
    """Repete a resposta gravada quando o cliente reenvia o mesmo Idempotency-Key.

    Só respostas 2xx são guardadas: um Contention ou Unavailable pode ser
    repetido com a mesma chave até dar certo.
    """

    def __init__(self, app, session_factory: Callable[[], Session]):
        super().__init__(app)
        self.session_factory = session_factory

    async def dispatch(self, request: Request, call_next):
        if request.method not in {"POST", "PUT", "PATCH", "DELETE"}:
            return await call_next(request)

        key = request.headers.get("Idempotency-Key")
        if not key:
            return await call_next(request)

        signature = sha256((request.method + request.url.path).encode()).hexdigest()
        with self.session_factory() as db:
            exists = db.execute(
                select(IdempotencyKey).where(IdempotencyKey.key == key, IdempotencyKey.signature == signature)
            ).scalar_one_or_none()
            if exists:
                return Response(content=exists.response_body, media_type=exists.response_mime, status_code=exists.status_code)

        response = await call_next(request)
        body = b""
        async for chunk in response.body_iterator:
            body += chunk
        if 200 <= response.status_code < 300:
            with self.session_factory() as db:
                db.add(IdempotencyKey(
                    key=key, signature=signature, response_body=body,
                    response_mime=response.headers.get("content-type") or "application/json", status_code=response.status_code,
                ))
                db.commit()
        headers = {k: v for k, v in response.headers.items() if k.lower() != "content-length"}
        return Response(content=body, status_code=response.status_code, headers=headers)
