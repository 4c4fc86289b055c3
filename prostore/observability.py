"""
Log de requisições da API: uma linha JSON por requisição no logger
``prostore.request``.

Além de método, rota e status, a linha traz quem chamou (``subject``/``role``
do token já validado pelo Auth Gate) e os ids da rota, para rastrear
alterações de catálogo por produto ou usuário.
"""
from __future__ import annotations

import json
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_LOGGER = "prostore.request"

logger = logging.getLogger(REQUEST_LOGGER)

# ids de rota que valem registrar
ROUTE_ID_PARAMS = ("product_id", "item_id", "user_id")


def configure_request_logging(level: int = logging.INFO) -> None:
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


def request_log_entry(request: Request, request_id: str, status: int, duration_ms: int) -> dict:
    route = request.scope.get("route")
    identity = getattr(request.state, "identity", None)
    entry = {
        "event": "http_request",
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "route": getattr(route, "path", None),
        "status": status,
        "duration_ms": duration_ms,
        "subject": identity.sub if identity is not None else None,
        "role": identity.role if identity is not None else None,
    }
    for name in ROUTE_ID_PARAMS:
        if name in request.path_params:
            entry[name] = request.path_params[name]
    return entry


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            entry = request_log_entry(request, request_id, 500, _elapsed_ms(start))
            logger.exception(json.dumps(entry, ensure_ascii=True))
            raise

        entry = request_log_entry(request, request_id, response.status_code, _elapsed_ms(start))
        logger.log(_level_for(response.status_code), json.dumps(entry, ensure_ascii=True))
        response.headers["X-Request-Id"] = request_id
        return response


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)
