"""
Legal classification step.

Sends the user's text to Gemini together with the configured system
instruction and turns the returned JSON into a ``ClassificationRecord``.
Either a fully populated record comes back or one of the classification
errors is raised; there is no partial result.
"""

import json
import logging
import re
import unicodedata
from typing import Any

from pydantic import ValidationError

from engine.errors import ContentBlocked, MalformedModelOutput
from engine.llm_client import GeminiClient
from models.schemas import ClassificationRecord
from prompts.system_prompts import (
    NEUTRAL_CATEGORY,
    NEUTRAL_PENALTY,
    NEUTRAL_RATIONALE,
    NEUTRAL_STATUTE,
)

logger = logging.getLogger(__name__)

_LEADING_FENCE = re.compile(r"\A\s*```(?:json)?[ \t]*\n?", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"\n?[ \t]*```\s*\Z")


def strip_code_fence(text: str) -> str:
    """Remove a single leading and trailing markdown code fence, if present."""
    text = _LEADING_FENCE.sub("", text, count=1)
    text = _TRAILING_FENCE.sub("", text, count=1)
    return text.strip()


def _fold(label: str) -> str:
    decomposed = unicodedata.normalize("NFKD", label)
    without_marks = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(without_marks.upper().split())


def is_neutral(category: str) -> bool:
    return _fold(category) == _fold(NEUTRAL_CATEGORY)


def extract_candidate_text(response: Any) -> str:
    """Pull ``candidates[0].content.parts[0].text`` out of a Gemini response."""
    if not isinstance(response, dict):
        raise MalformedModelOutput("response is not a JSON object")

    feedback = response.get("promptFeedback")
    block_reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
    if block_reason:
        raise ContentBlocked(str(block_reason))

    candidates = response.get("candidates") or []
    if not isinstance(candidates, list) or not candidates:
        raise MalformedModelOutput("response has no candidates")

    candidate = candidates[0]
    if not isinstance(candidate, dict):
        raise MalformedModelOutput("candidate is not a JSON object")

    content = candidate.get("content") or {}
    if not isinstance(content, dict):
        raise MalformedModelOutput("candidate content is not a JSON object")

    parts = content.get("parts") or []
    if not isinstance(parts, list):
        raise MalformedModelOutput("candidate parts is not a list")

    text = parts[0].get("text") if parts and isinstance(parts[0], dict) else None
    if text is not None and not isinstance(text, str):
        raise MalformedModelOutput("candidate text is not a string")
    if text:
        return text

    if candidate.get("finishReason") == "SAFETY":
        raise ContentBlocked("SAFETY")
    raise MalformedModelOutput("candidate has no text content")


def parse_record(raw_text: str, original_text: str) -> ClassificationRecord:
    """Parse the model's JSON payload and enforce the neutral-category rules."""
    cleaned = strip_code_fence(raw_text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise MalformedModelOutput(f"invalid JSON ({exc.msg})", raw_text=raw_text) from exc

    if not isinstance(data, dict):
        raise MalformedModelOutput("JSON payload is not an object", raw_text=raw_text)

    data["Frase_Original"] = original_text

    category = data.get("Categoria_Legal")
    if isinstance(category, str) and is_neutral(category):
        data.update(
            {
                "Categoria_Legal": NEUTRAL_CATEGORY,
                "Articulo_CR": NEUTRAL_STATUTE,
                "Penalidad_Estimada": NEUTRAL_PENALTY,
                "Detalles_Deteccion": NEUTRAL_RATIONALE,
            }
        )

    try:
        return ClassificationRecord.model_validate(data)
    except ValidationError as exc:
        fields = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
        raise MalformedModelOutput(
            f"missing or empty fields: {', '.join(fields)}", raw_text=raw_text
        ) from exc


class LegalClassifier:
    """Classify free text into a Costa Rican criminal-law category."""

    def __init__(self, client: GeminiClient, system_prompt: str):
        self._client = client
        self._system_prompt = system_prompt

    async def classify(self, user_text: str, *, timeout: float | None = None) -> ClassificationRecord:
        response = await self._client.generate(self._system_prompt, user_text, timeout=timeout)
        raw_text = extract_candidate_text(response)
        try:
            record = parse_record(raw_text, user_text)
        except MalformedModelOutput as exc:
            logger.warning("Unparseable model output (%s): %.200r", exc.reason, raw_text)
            raise
        logger.info("Classified text as %s", record.legal_category)
        return record
