"""Error variants raised by the analysis pipeline and its collaborators.

Only classification-stage errors ever reach a client, and only through the
status/body table in ``api.error_handlers``. Evidence and persistence errors
are absorbed where they happen and logged.
"""

from __future__ import annotations


class AnalysisError(Exception):
    """Base class for every failure the analyzer knows how to describe."""


class RejectedEmptyInput(AnalysisError):
    """The submitted text was missing, empty or whitespace-only."""

    def __init__(self) -> None:
        super().__init__("Input text is empty")


class ClassificationFailed(AnalysisError):
    """The classification stage could not produce a record."""


class ClassifierUnavailable(ClassificationFailed):
    """Transport failure, timeout or non-2xx status from the LLM endpoint."""

    def __init__(self, detail: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        self.detail = detail
        prefix = f"LLM endpoint returned {status_code}" if status_code else "LLM endpoint unavailable"
        super().__init__(f"{prefix}: {detail}")


class ContentBlocked(ClassificationFailed):
    """The LLM safety layer refused to produce a candidate."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Response blocked by the model safety layer: {reason}")


class MalformedModelOutput(ClassificationFailed):
    """A response arrived but did not hold the expected JSON record."""

    def __init__(self, reason: str, raw_text: str | None = None) -> None:
        self.reason = reason
        self.raw_text = raw_text
        super().__init__(f"Malformed model output: {reason}")


class EvidenceLookupFailed(AnalysisError):
    """Transport or parse failure talking to the legal search service."""


class LawNotFound(AnalysisError):
    """The legal search service has no law with the requested id."""

    def __init__(self, law_id: str) -> None:
        self.law_id = law_id
        super().__init__(f"Law {law_id!r} not found")


class PersistenceFailed(AnalysisError):
    """Writing an analysis log entry to the document store failed."""
