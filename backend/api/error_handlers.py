"""Centralized FastAPI exception handlers with a stable error contract.

Every error body has the shape ``{"error": <message>, "code": <code>}``.
Diagnostic detail is logged, never returned.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from engine.errors import (
    AnalysisError,
    ClassificationFailed,
    EvidenceLookupFailed,
    LawNotFound,
    RejectedEmptyInput,
)

logger = logging.getLogger(__name__)

GENERIC_ERROR = ("internal_error", "Error procesando la solicitud.")

# Looked up along the exception's MRO, so subclasses inherit their parent's row.
ERROR_RESPONSES: dict[type[AnalysisError], tuple[int, str, str]] = {
    RejectedEmptyInput: (400, "empty_text", "Texto requerido"),
    ClassificationFailed: (500, "classification_failed", "Error procesando la solicitud."),
    LawNotFound: (404, "law_not_found", "Ley no encontrada"),
    EvidenceLookupFailed: (500, "law_lookup_failed", "Error consultando la ley."),
}

DEFAULT_MESSAGES = {
    400: ("bad_request", "Solicitud inválida."),
    404: ("not_found", "Recurso no encontrado."),
    405: ("method_not_allowed", "Método no permitido."),
    422: ("validation_error", "Solicitud inválida."),
    429: ("rate_limited", "Demasiadas solicitudes."),
    500: GENERIC_ERROR,
}


def _payload(code: str, message: str) -> dict:
    return {"error": message, "code": code}


def describe_error(exc: AnalysisError) -> tuple[int, str, str]:
    for cls in type(exc).__mro__:
        if cls in ERROR_RESPONSES:
            return ERROR_RESPONSES[cls]
    return (500, *GENERIC_ERROR)


async def analysis_error_handler(request: Request, exc: AnalysisError) -> JSONResponse:
    status_code, code, message = describe_error(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content=_payload(code, message))


async def http_exception_handler(_: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, dict) and "error" in detail:
        return JSONResponse(status_code=exc.status_code, content=detail, headers=exc.headers)

    code, message = DEFAULT_MESSAGES.get(exc.status_code, ("http_error", "La solicitud falló."))
    return JSONResponse(
        status_code=exc.status_code,
        content=_payload(code, message),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("%s %s validation failed: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=422, content=_payload(*DEFAULT_MESSAGES[422]))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=_payload(*GENERIC_ERROR))
