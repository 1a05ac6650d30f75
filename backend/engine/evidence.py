"""Client for the LawCrawler legal search service.

``find_evidence`` is enrichment only: any failure degrades to an empty list.
``get_law`` backs the law-detail proxy endpoint and does raise.
"""

import asyncio
import logging
from typing import Any

import httpx

from config import Settings
from engine.errors import EvidenceLookupFailed, LawNotFound
from models.schemas import EvidenceItem

logger = logging.getLogger(__name__)


def derive_query(category_label: str) -> str:
    """Reduce a category label to its first whitespace-delimited token.

    Multi-word labels ("HOMICIDIO SIMPLE") rarely match the search index;
    the single keyword ("HOMICIDIO") trades precision for recall.
    """
    tokens = category_label.split()
    return tokens[0] if tokens else ""


class LawSearchClient:
    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._http = http_client
        self._default_timeout = settings.evidence_timeout_seconds
        self.base_url = settings.lawcrawler_api_url.rstrip("/")

    async def _get(self, path: str, *, params: dict | None = None, timeout: float | None) -> httpx.Response:
        timeout = self._default_timeout if timeout is None else timeout
        try:
            return await asyncio.wait_for(
                self._http.get(f"{self.base_url}{path}", params=params),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            raise EvidenceLookupFailed(f"GET {path} timed out after {timeout:.1f}s") from None
        except httpx.HTTPError as exc:
            raise EvidenceLookupFailed(f"GET {path} failed: {exc.__class__.__name__}: {exc}") from exc

    async def search(self, query: str, *, timeout: float | None = None) -> list[EvidenceItem]:
        """Run ``GET /search?q=``; raises EvidenceLookupFailed."""
        response = await self._get("/search", params={"q": query}, timeout=timeout)
        if not response.is_success:
            raise EvidenceLookupFailed(f"search returned status {response.status_code}")
        try:
            data = response.json()
        except ValueError as exc:
            raise EvidenceLookupFailed("search response is not JSON") from exc

        results = data.get("resultados") if isinstance(data, dict) else None
        if not isinstance(results, list):
            raise EvidenceLookupFailed("search response has no 'resultados' list")

        items = [item for item in results if isinstance(item, dict)]
        if len(items) < len(results):
            logger.warning(
                "Discarded %d non-object search result(s) for %r", len(results) - len(items), query
            )
        return items

    async def find_evidence(self, category_label: str, *, timeout: float | None = None) -> list[EvidenceItem]:
        query = derive_query(category_label)
        if not query:
            return []

        logger.info("Searching LawCrawler evidence for %r", query)
        try:
            results = await self.search(query, timeout=timeout)
        except EvidenceLookupFailed as exc:
            logger.warning("Evidence lookup failed for %r: %s", query, exc)
            return []

        logger.info("LawCrawler returned %d result(s) for %r", len(results), query)
        return results

    async def get_law(self, law_id: str, *, timeout: float | None = None) -> dict[str, Any]:
        """Fetch ``GET /law/{law_id}``.

        Raises LawNotFound on a 404 and EvidenceLookupFailed on anything else
        that is not a JSON object with a 2xx status.
        """
        response = await self._get(f"/law/{law_id}", timeout=timeout)
        if response.status_code == 404:
            raise LawNotFound(law_id)
        if not response.is_success:
            raise EvidenceLookupFailed(f"law detail returned status {response.status_code}")
        try:
            data = response.json()
        except ValueError as exc:
            raise EvidenceLookupFailed("law detail response is not JSON") from exc
        if not isinstance(data, dict):
            raise EvidenceLookupFailed("law detail response is not an object")
        return data
