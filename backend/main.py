import logging
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from api.error_handlers import (
    analysis_error_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from config import Settings, get_settings
from engine.errors import AnalysisError
from engine.evidence import LawSearchClient
from engine.pipeline import build_pipeline
from logging_config import request_id_var, setup_logging
from services.persistence import SOURCE_WEB, build_recorder

settings = get_settings()
setup_logging(settings)
logger = logging.getLogger(__name__)

DEFAULT_STATIC_DIR = Path(__file__).resolve().parent / "public"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: one shared HTTP client, one recorder, one pipeline per process
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; every analysis will fail until it is configured")

    # Per-call budgets are enforced by the clients; this is only the outer bound.
    http_client = httpx.AsyncClient(
        timeout=max(settings.llm_call_timeout_seconds, settings.evidence_timeout_seconds)
    )
    recorder = build_recorder(settings, source=SOURCE_WEB)
    app.state.recorder = recorder
    app.state.law_client = LawSearchClient(settings, http_client)
    app.state.pipeline = build_pipeline(settings, http_client, recorder=recorder)

    logger.info(
        "%s ready (persistence=%s, evidence=%s, lawcrawler=%s)",
        settings.app_name,
        recorder.mode,
        "on" if settings.evidence_enabled else "off",
        settings.lawcrawler_api_url,
    )

    yield

    # Shutdown
    try:
        await recorder.close()
    finally:
        await http_client.aclose()


app = FastAPI(
    title=settings.app_name,
    description="Clasificación de textos según el Código Penal de Costa Rica",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Attach a unique request ID to every request for traceability."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-Id"] = request_id
        return response


app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-Id"],
    expose_headers=["X-Request-Id"],
)


# ─── Register Routers ─────────────────────────────────────────────────────────

from api.analyze import router as analyze_router

app.include_router(analyze_router, tags=["Analysis"])
app.add_exception_handler(AnalysisError, analysis_error_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


@app.get("/health")
async def health_check(request: Request):
    """Public health check; reports which optional collaborators are active."""
    recorder = getattr(request.app.state, "recorder", None)
    return {
        "status": "healthy",
        "service": settings.app_name,
        "persistence": recorder.mode if recorder is not None else "local",
        "evidence": settings.evidence_enabled,
    }


def mount_static(app: FastAPI, settings: Settings) -> None:
    """Serve the bundled front end; must run after every API route is registered."""
    static_dir = Path(settings.static_dir) if settings.static_dir else DEFAULT_STATIC_DIR
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
    else:
        logger.warning("Static directory %s not found; front end will not be served", static_dir)


mount_static(app, settings)


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    logger.info("Listening on http://%s:%d", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
