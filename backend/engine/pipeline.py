"""
Analysis pipeline orchestrator.

Runs one request through: classification → evidence lookup (optional, never
for the neutral category) → response assembly → persistence hand-off.
Classification errors short-circuit the run; evidence and persistence
failures never do.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from config import Settings
from engine.classifier import LegalClassifier, is_neutral
from engine.errors import ClassifierUnavailable, RejectedEmptyInput
from engine.evidence import LawSearchClient
from engine.llm_client import GeminiClient
from models.schemas import ClassificationRecord, EvidenceItem
from prompts.system_prompts import load_system_prompt
from services.persistence import NullRecorder, Recorder

logger = logging.getLogger(__name__)


class Classifier(Protocol):
    async def classify(self, user_text: str, *, timeout: float | None = None) -> ClassificationRecord: ...


class EvidenceLookup(Protocol):
    async def find_evidence(self, category_label: str, *, timeout: float | None = None) -> list[EvidenceItem]: ...


def validate_text(text: str | None) -> str:
    """Return the text unchanged if it has content, else raise RejectedEmptyInput."""
    if text is None or not text.strip():
        raise RejectedEmptyInput()
    return text


@dataclass(frozen=True, slots=True)
class Deadline:
    """Absolute monotonic deadline shared by every external call of one request."""

    expires_at: float

    @classmethod
    def after(cls, seconds: float) -> Deadline:
        return cls(time.monotonic() + seconds)

    def remaining(self) -> float:
        return max(0.0, self.expires_at - time.monotonic())

    def budget(self, cap: float) -> float:
        return min(cap, self.remaining())


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    record: ClassificationRecord
    evidence: list[EvidenceItem] | None = field(default=None)

    def as_response(self) -> dict[str, Any]:
        body: dict[str, Any] = self.record.as_document()
        if self.evidence is not None:
            body["Evidencia_Crawler"] = list(self.evidence)
        return body


class AnalysisPipeline:
    """Compose the classifier with the optional evidence and persistence steps."""

    def __init__(
        self,
        classifier: Classifier,
        *,
        evidence: EvidenceLookup | None = None,
        recorder: Recorder | None = None,
        evidence_max_items: int = 3,
        llm_timeout: float = 60,
        evidence_timeout: float = 10,
        request_timeout: float = 90,
    ):
        self.classifier = classifier
        self.evidence = evidence
        self.recorder = recorder or NullRecorder()
        self.evidence_max_items = evidence_max_items
        self.llm_timeout = llm_timeout
        self.evidence_timeout = evidence_timeout
        self.request_timeout = request_timeout

    async def run(self, text: str | None, *, deadline: Deadline | None = None) -> AnalysisResult:
        text = validate_text(text)
        deadline = deadline or Deadline.after(self.request_timeout)
        logger.info("Analyzing: %r", text[:30])

        # ── Classification ─────────────────────────────────────────────────
        llm_budget = deadline.budget(self.llm_timeout)
        if llm_budget <= 0:
            raise ClassifierUnavailable("request deadline exceeded before classification")
        record = await self.classifier.classify(text, timeout=llm_budget)

        # ── Evidence lookup (integrated mode, non-neutral only) ───────────
        evidence: list[EvidenceItem] | None = None
        if self.evidence is not None:
            evidence = []
            if not is_neutral(record.legal_category):
                evidence = await self._lookup_evidence(record.legal_category, deadline)

        result = AnalysisResult(record=record, evidence=evidence)

        # ── Persistence hand-off (never gates the response) ──────────────
        try:
            await self.recorder.submit(result.as_response())
        except Exception:
            logger.exception("Persistence hand-off failed")
        return result

    async def _lookup_evidence(self, category: str, deadline: Deadline) -> list[EvidenceItem]:
        budget = deadline.budget(self.evidence_timeout)
        if budget <= 0:
            logger.warning("Skipping evidence lookup: request deadline exceeded")
            return []
        items = await self.evidence.find_evidence(category, timeout=budget)
        return list(items)[: self.evidence_max_items]


def build_pipeline(
    settings: Settings,
    http_client: httpx.AsyncClient,
    *,
    recorder: Recorder | None = None,
    with_evidence: bool | None = None,
) -> AnalysisPipeline:
    """Wire the production collaborators from one settings snapshot."""
    with_evidence = settings.evidence_enabled if with_evidence is None else with_evidence
    classifier = LegalClassifier(GeminiClient(settings, http_client), load_system_prompt(settings))
    evidence = LawSearchClient(settings, http_client) if with_evidence else None
    return AnalysisPipeline(
        classifier,
        evidence=evidence,
        recorder=recorder,
        evidence_max_items=settings.evidence_max_items,
        llm_timeout=settings.llm_call_timeout_seconds,
        evidence_timeout=settings.evidence_timeout_seconds,
        request_timeout=settings.request_timeout_seconds,
    )
