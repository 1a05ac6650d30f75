"""Shared fakes for the analyzer tests: upstream responses and stub collaborators."""

import json

import httpx

from config import Settings
from models.schemas import ClassificationRecord

GEMINI_BASE = "https://gemini.test/v1beta"
LAWCRAWLER_BASE = "http://lawcrawler.test"

SAMPLE_TEXT = "Sos un ladrón y te voy a matar"

SAMPLE_RECORD = {
    "Frase_Original": SAMPLE_TEXT,
    "Categoria_Legal": "AMENAZA",
    "Articulo_CR": "Código Penal Art. 188",
    "Penalidad_Estimada": "3 a 20 días de prisión o 30 a 90 días multa",
    "Detalles_Deteccion": "Anuncia un mal grave e injusto contra la vida de la persona.",
}


def make_settings(**overrides) -> Settings:
    values = {
        "gemini_api_key": "test-key",
        "gemini_api_base": GEMINI_BASE,
        "lawcrawler_api_url": LAWCRAWLER_BASE,
        "database_url": "",
        "database_credentials_file": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_record(**overrides) -> ClassificationRecord:
    data = {**SAMPLE_RECORD, **overrides}
    return ClassificationRecord.model_validate(data)


def gemini_body(payload: dict | str) -> dict:
    """Build a successful generateContent response wrapping ``payload``."""
    text = payload if isinstance(payload, str) else json.dumps(payload, ensure_ascii=False)
    return {
        "candidates": [
            {
                "content": {"role": "model", "parts": [{"text": text}]},
                "finishReason": "STOP",
            }
        ],
        "usageMetadata": {"promptTokenCount": 120, "candidatesTokenCount": 60},
    }


class FakeUpstream:
    """``httpx.MockTransport`` handler that records requests and routes by host."""

    def __init__(self, *, gemini=None, lawcrawler=None):
        self.gemini = gemini
        self.lawcrawler = lawcrawler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.gemini if request.url.host == "gemini.test" else self.lawcrawler
        if handler is None:
            raise AssertionError(f"Unexpected upstream call: {request.method} {request.url}")
        if isinstance(handler, httpx.Response):
            return handler
        return handler(request)

    def calls_to(self, host: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


class StubClassifier:
    def __init__(self, record: ClassificationRecord | None = None, error: Exception | None = None, events=None):
        self.record = record or make_record()
        self.error = error
        self.calls: list[str] = []
        self.timeouts: list[float | None] = []
        self.events = events

    async def classify(self, user_text: str, *, timeout: float | None = None) -> ClassificationRecord:
        self.calls.append(user_text)
        self.timeouts.append(timeout)
        if self.events is not None:
            self.events.append("classify")
        if self.error is not None:
            raise self.error
        return self.record


class StubEvidence:
    def __init__(self, items: list[dict] | None = None, events=None):
        self.items = items or []
        self.calls: list[str] = []
        self.events = events

    async def find_evidence(self, category_label: str, *, timeout: float | None = None) -> list[dict]:
        self.calls.append(category_label)
        if self.events is not None:
            self.events.append("evidence")
        return list(self.items)


class FakeRecorder:
    mode = "background"
    enabled = True

    def __init__(self, events=None, error: Exception | None = None):
        self.documents: list[dict] = []
        self.events = events
        self.error = error
        self.closed = False

    async def submit(self, document: dict) -> None:
        if self.events is not None:
            self.events.append("persist")
        if self.error is not None:
            raise self.error
        self.documents.append(document)

    async def close(self) -> None:
        self.closed = True
