"""
Taxonomia de erros do catálogo e o mapeamento para respostas HTTP.

Serviços levantam estas exceções; o FastAPI as traduz em ``{"detail": ...}``
através dos handlers registrados em ``register_exception_handlers``.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.background import BackgroundTask

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    status_code = 500
    default_message = "Operation failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def public_message(self) -> str:
        return self.message


class ValidationError(CatalogError):
    status_code = 400
    default_message = "Invalid payload"


class NotFound(CatalogError):
    status_code = 404
    default_message = "Not found"


class UpstreamFailure(CatalogError):
    status_code = 500
    default_message = "Operation failed"

    @property
    def public_message(self) -> str:
        # detail stays in the server log
        return self.default_message


def error_response(exc: CatalogError, background: BackgroundTask | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.public_message},
        background=background,
    )


async def _catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
    if isinstance(exc, UpstreamFailure):
        logger.error("upstream failure on %s %s: %s", request.method, request.url.path, exc.message)
    return error_response(exc)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CatalogError, _catalog_error_handler)
