"""Pydantic schemas for API request/response validation."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Evidence items are opaque records returned by the legal search service.
EvidenceItem = dict[str, Any]


# ─── Classification ───────────────────────────────────────────────────────────


class ClassificationRecord(BaseModel):
    """The verdict produced for one input text.

    Field aliases match the JSON keys the model is instructed to emit and the
    keys returned to clients.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    original_text: str = Field(..., alias="Frase_Original")
    legal_category: str = Field(..., alias="Categoria_Legal", min_length=1)
    statute_reference: str = Field(..., alias="Articulo_CR", min_length=1)
    estimated_penalty: str = Field(..., alias="Penalidad_Estimada", min_length=1)
    detection_rationale: str = Field(..., alias="Detalles_Deteccion", min_length=1)

    @field_validator(
        "legal_category",
        "statute_reference",
        "estimated_penalty",
        "detection_rationale",
        mode="before",
    )
    @classmethod
    def _strip(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    def as_document(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)


# ─── API ──────────────────────────────────────────────────────────────────────


class AnalyzeRequest(BaseModel):
    # Optional so a missing field is answered with 400 "Texto requerido"
    # instead of a schema validation error.
    text: str | None = None


class AnalyzeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    original_text: str = Field(..., alias="Frase_Original")
    legal_category: str = Field(..., alias="Categoria_Legal")
    statute_reference: str = Field(..., alias="Articulo_CR")
    estimated_penalty: str = Field(..., alias="Penalidad_Estimada")
    detection_rationale: str = Field(..., alias="Detalles_Deteccion")
    evidence: list[EvidenceItem] | None = Field(None, alias="Evidencia_Crawler")


class ErrorResponse(BaseModel):
    error: str
    code: str
