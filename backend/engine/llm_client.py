"""Gemini ``generateContent`` client over plain HTTPS.

Requests are a single call per classification: no retries, no circuit
breaker. Every call is bounded by an explicit timeout.
"""

import asyncio
import logging
import time
from typing import Any

import httpx

from config import Settings
from engine.errors import ClassifierUnavailable
from prompts.system_prompts import RESPONSE_SCHEMA

logger = logging.getLogger(__name__)

# The classifier has to see offensive content to label it, so the upstream
# safety filters must not refuse or redact it.
SAFETY_SETTINGS = [
    {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_NONE"},
]


def _error_detail(response: httpx.Response) -> str:
    """Prefer ``error.message`` from a JSON error body, else the raw text."""
    body = response.text
    try:
        message = response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return body[:500] or response.reason_phrase
    return str(message)


class GeminiClient:
    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._http = http_client
        self._api_key = settings.gemini_api_key
        self._default_timeout = settings.llm_call_timeout_seconds
        self._response_schema = settings.gemini_response_schema
        self.model = settings.gemini_model
        self.url = f"{settings.gemini_api_base.rstrip('/')}/models/{self.model}:generateContent"

    def build_payload(self, system_instruction: str, user_text: str) -> dict[str, Any]:
        generation_config: dict[str, Any] = {"responseMimeType": "application/json"}
        if self._response_schema:
            generation_config["responseSchema"] = RESPONSE_SCHEMA

        return {
            "systemInstruction": {"parts": [{"text": system_instruction}]},
            "contents": [{"role": "user", "parts": [{"text": user_text}]}],
            "generationConfig": generation_config,
            "safetySettings": SAFETY_SETTINGS,
        }

    async def generate(
        self,
        system_instruction: str,
        user_text: str,
        *,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """POST one ``generateContent`` request and return the decoded body.

        Raises ClassifierUnavailable on a missing key, transport error, timeout,
        non-2xx status or a non-JSON body.
        """
        if not self._api_key:
            raise ClassifierUnavailable("GEMINI_API_KEY is not configured")

        timeout = self._default_timeout if timeout is None else timeout
        payload = self.build_payload(system_instruction, user_text)
        start = time.monotonic()

        try:
            response = await asyncio.wait_for(
                self._http.post(
                    self.url,
                    json=payload,
                    headers={"x-goog-api-key": self._api_key},
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            raise ClassifierUnavailable(f"timed out after {timeout:.1f}s") from None
        except httpx.HTTPError as exc:
            raise ClassifierUnavailable(f"{exc.__class__.__name__}: {exc}") from exc

        elapsed_ms = int((time.monotonic() - start) * 1000)

        if not response.is_success:
            raise ClassifierUnavailable(_error_detail(response), status_code=response.status_code)

        try:
            body = response.json()
        except ValueError as exc:
            raise ClassifierUnavailable("response body is not JSON", status_code=response.status_code) from exc

        usage = (body.get("usageMetadata") if isinstance(body, dict) else None) or {}
        logger.info(
            "Gemini call completed: model=%s latency_ms=%d input_tokens=%s output_tokens=%s",
            self.model,
            elapsed_ms,
            usage.get("promptTokenCount", 0),
            usage.get("candidatesTokenCount", 0),
        )
        return body
