"""Analysis and law-detail API endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Path, Request

from api.guardrails import FixedWindowRateLimiter
from config import get_settings
from engine.evidence import LawSearchClient
from engine.pipeline import AnalysisPipeline, validate_text
from models.schemas import AnalyzeRequest, AnalyzeResponse, ErrorResponse

settings = get_settings()
router = APIRouter(prefix="/api")
analyze_limiter = FixedWindowRateLimiter(
    max_requests=settings.analyze_requests_per_minute,
    window_seconds=60,
)

# A single path segment: no slashes, and it cannot start with a dot.
LAW_ID_PATTERN = r"^[A-Za-z0-9_-][A-Za-z0-9_.-]{0,127}$"


def get_pipeline(request: Request) -> AnalysisPipeline:
    return request.app.state.pipeline


def get_law_client(request: Request) -> LawSearchClient:
    return request.app.state.law_client


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def analyze_text(
    request: Request,
    body: Annotated[AnalyzeRequest | None, Body()] = None,
    pipeline: AnalysisPipeline = Depends(get_pipeline),
) -> dict[str, Any]:
    """Classify a text and, for offenses, attach supporting legal evidence."""
    text = validate_text(body.text if body else None)
    await analyze_limiter.check(
        _client_key(request),
        code="analyze_rate_limited",
        message="Demasiadas solicitudes. Intente de nuevo en un minuto.",
    )
    result = await pipeline.run(text)
    return result.as_response()


@router.get(
    "/law/{law_id}",
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def get_law(
    law_id: Annotated[str, Path(pattern=LAW_ID_PATTERN)],
    law_client: LawSearchClient = Depends(get_law_client),
) -> dict[str, Any]:
    """Proxy a law detail lookup to the legal search service."""
    return await law_client.get_law(law_id)
