"""
End-to-end tests for the HTTP surface.

The real pipeline is wired against a mocked Gemini endpoint and a mocked
LawCrawler service (``httpx.MockTransport``), so every request exercises
classification, evidence lookup, error mapping and persistence hand-off.
"""

import httpx

from engine.evidence import LawSearchClient
from engine.pipeline import build_pipeline
from prompts.system_prompts import NEUTRAL_CATEGORY
from helpers import (
    SAMPLE_RECORD,
    SAMPLE_TEXT,
    FakeRecorder,
    FakeUpstream,
    gemini_body,
    make_settings,
)

LAWS = [{"id": f"cp-{n}", "titulo": f"Código Penal, Artículo {n}"} for n in range(184, 191)]


def _gemini_ok(payload=SAMPLE_RECORD):
    return lambda request: httpx.Response(200, json=gemini_body(payload))


def _search_ok(request):
    return httpx.Response(200, json={"resultados": LAWS})


def _wire(api_client, upstream, *, evidence=True):
    settings = make_settings(evidence_enabled=evidence)
    http_client = upstream.client()
    recorder = FakeRecorder()
    pipeline = build_pipeline(settings, http_client, recorder=recorder)
    client = api_client(pipeline=pipeline, law_client=LawSearchClient(settings, http_client))
    return client, recorder


class TestAnalyzeEndpoint:

    def test_offense_is_classified_and_persisted_once(self, api_client):
        upstream = FakeUpstream(gemini=_gemini_ok(), lawcrawler=_search_ok)
        client, recorder = _wire(api_client, upstream)

        response = client.post("/api/analyze", json={"text": SAMPLE_TEXT})

        assert response.status_code == 200
        body = response.json()
        assert body["Categoria_Legal"] == "AMENAZA"
        assert body["Frase_Original"] == SAMPLE_TEXT
        assert recorder.documents == [body]

    def test_evidence_truncated_to_three_items(self, api_client):
        upstream = FakeUpstream(gemini=_gemini_ok(), lawcrawler=_search_ok)
        client, _ = _wire(api_client, upstream)

        body = client.post("/api/analyze", json={"text": SAMPLE_TEXT}).json()

        assert body["Evidencia_Crawler"] == LAWS[:3]
        [search] = upstream.calls_to("lawcrawler.test")
        assert search.url.params["q"] == "AMENAZA"

    def test_neutral_text_has_empty_evidence_and_no_search(self, api_client):
        neutral = {
            "Frase_Original": "Buenos días",
            "Categoria_Legal": NEUTRAL_CATEGORY,
            "Articulo_CR": "No aplica",
            "Penalidad_Estimada": "Ninguna",
            "Detalles_Deteccion": "Saludo cordial.",
        }
        upstream = FakeUpstream(gemini=_gemini_ok(neutral), lawcrawler=_search_ok)
        client, _ = _wire(api_client, upstream)

        body = client.post("/api/analyze", json={"text": "Buenos días"}).json()

        assert body["Categoria_Legal"] == NEUTRAL_CATEGORY
        assert body["Evidencia_Crawler"] == []
        assert upstream.calls_to("lawcrawler.test") == []

    def test_evidence_disabled_omits_key(self, api_client):
        upstream = FakeUpstream(gemini=_gemini_ok())
        client, _ = _wire(api_client, upstream, evidence=False)

        body = client.post("/api/analyze", json={"text": SAMPLE_TEXT}).json()

        assert "Evidencia_Crawler" not in body
        assert body == SAMPLE_RECORD

    def test_search_outage_still_returns_classification(self, api_client):
        upstream = FakeUpstream(gemini=_gemini_ok(), lawcrawler=lambda r: httpx.Response(502))
        client, _ = _wire(api_client, upstream)

        response = client.post("/api/analyze", json={"text": SAMPLE_TEXT})

        assert response.status_code == 200
        assert response.json()["Evidencia_Crawler"] == []

    def test_malformed_search_results_still_return_classification(self, api_client):
        upstream = FakeUpstream(
            gemini=_gemini_ok(),
            lawcrawler=lambda r: httpx.Response(200, json={"resultados": ["Art 188", "Art 189"]}),
        )
        client, recorder = _wire(api_client, upstream)

        response = client.post("/api/analyze", json={"text": SAMPLE_TEXT})

        assert response.status_code == 200
        body = response.json()
        assert body["Evidencia_Crawler"] == []
        assert recorder.documents == [body]

    def test_fenced_model_output_is_accepted(self, api_client):
        fenced = "```json\n" + gemini_body(SAMPLE_RECORD)["candidates"][0]["content"]["parts"][0]["text"] + "\n```"
        upstream = FakeUpstream(
            gemini=lambda r: httpx.Response(200, json=gemini_body(fenced)),
            lawcrawler=_search_ok,
        )
        client, _ = _wire(api_client, upstream)

        response = client.post("/api/analyze", json={"text": SAMPLE_TEXT})

        assert response.status_code == 200
        assert response.json()["Categoria_Legal"] == "AMENAZA"


class TestAnalyzeFailures:

    def test_empty_text_is_rejected_without_llm_call(self, api_client):
        upstream = FakeUpstream(gemini=_gemini_ok())
        client, recorder = _wire(api_client, upstream)

        response = client.post("/api/analyze", json={"text": ""})

        assert response.status_code == 400
        assert response.json() == {"error": "Texto requerido", "code": "empty_text"}
        assert upstream.requests == []
        assert recorder.documents == []

    def test_whitespace_text_is_rejected(self, api_client):
        client, _ = _wire(api_client, FakeUpstream())
        assert client.post("/api/analyze", json={"text": " \n\t "}).status_code == 400

    def test_missing_text_field_is_rejected(self, api_client):
        client, _ = _wire(api_client, FakeUpstream())
        assert client.post("/api/analyze", json={}).status_code == 400

    def test_missing_body_is_rejected(self, api_client):
        client, _ = _wire(api_client, FakeUpstream())
        assert client.post("/api/analyze").status_code == 400

    def test_llm_server_error_gives_generic_500(self, api_client):
        upstream = FakeUpstream(
            gemini=lambda r: httpx.Response(500, json={"error": {"message": "internal: quota backend"}}),
            lawcrawler=_search_ok,
        )
        client, recorder = _wire(api_client, upstream)

        response = client.post("/api/analyze", json={"text": SAMPLE_TEXT})

        assert response.status_code == 500
        assert response.json() == {"error": "Error procesando la solicitud.", "code": "classification_failed"}
        assert "quota backend" not in response.text
        assert recorder.documents == []
        assert upstream.calls_to("lawcrawler.test") == []

    def test_blocked_content_gives_500(self, api_client):
        upstream = FakeUpstream(
            gemini=lambda r: httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}}),
        )
        client, recorder = _wire(api_client, upstream)

        response = client.post("/api/analyze", json={"text": SAMPLE_TEXT})

        assert response.status_code == 500
        assert response.json()["code"] == "classification_failed"
        assert recorder.documents == []

    def test_unparseable_model_output_gives_500(self, api_client):
        upstream = FakeUpstream(gemini=lambda r: httpx.Response(200, json=gemini_body("lo siento, no puedo")))
        client, _ = _wire(api_client, upstream)

        assert client.post("/api/analyze", json={"text": SAMPLE_TEXT}).status_code == 500


class TestLawDetailEndpoint:

    def test_proxies_law_detail(self, api_client):
        detail = {"id": "cp-188", "titulo": "Amenazas", "texto": "Será sancionado..."}
        upstream = FakeUpstream(lawcrawler=lambda r: httpx.Response(200, json=detail))
        client, _ = _wire(api_client, upstream)

        response = client.get("/api/law/cp-188")

        assert response.status_code == 200
        assert response.json() == detail

    def test_unknown_law_is_404(self, api_client):
        upstream = FakeUpstream(lawcrawler=lambda r: httpx.Response(404))
        client, _ = _wire(api_client, upstream)

        response = client.get("/api/law/cp-999")

        assert response.status_code == 404
        assert response.json() == {"error": "Ley no encontrada", "code": "law_not_found"}

    def test_upstream_error_is_500(self, api_client):
        upstream = FakeUpstream(lawcrawler=lambda r: httpx.Response(500))
        client, _ = _wire(api_client, upstream)

        response = client.get("/api/law/cp-188")

        assert response.status_code == 500
        assert response.json()["code"] == "law_lookup_failed"

    def test_upstream_unreachable_is_500(self, api_client):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client, _ = _wire(api_client, FakeUpstream(lawcrawler=refuse))

        assert client.get("/api/law/cp-188").status_code == 500

    def test_invalid_law_id_never_reaches_upstream(self, api_client):
        upstream = FakeUpstream()
        client, _ = _wire(api_client, upstream)

        response = client.get("/api/law/ley$188")

        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"
        assert upstream.requests == []


class TestServiceEndpoints:

    def test_health(self, api_client):
        client = api_client()

        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["persistence"] in {"local", "await", "background"}

    def test_request_id_is_echoed(self, api_client):
        client = api_client()

        response = client.get("/health", headers={"X-Request-Id": "req-123"})

        assert response.headers["X-Request-Id"] == "req-123"

    def test_request_id_generated_when_absent(self, api_client):
        response = api_client().get("/health")
        assert response.headers["X-Request-Id"]

    def test_front_end_is_served_at_root(self, api_client):
        response = api_client().get("/")

        assert response.status_code == 200
        assert "Honoris" in response.text
