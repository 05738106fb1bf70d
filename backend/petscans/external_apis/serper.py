"""
Serper (Google search API) retailer search.
POST https://google.serper.dev/search {"q": "<query> site:<retailer>", "num": 5}
Finds product-page URLs on pet retailers; one candidate per retailer at most.
"""
import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import urlparse

from petscans.config import PROVIDER_TIMEOUT, get_serper_api_key
from petscans.external_apis.base import ProductSearchError, ProductSearchReason, SearchCandidate
from petscans.external_apis.http_retry import post_with_retries

logger = logging.getLogger(__name__)

SERPER_SEARCH_URL = "https://google.serper.dev/search"
RESULTS_PER_QUERY = 5
MAX_QUERY_WORDS = 6

# "30 lb", "12.5oz", "24 ct" and similar size specs confuse retailer search
_SIZE_SPEC_RE = re.compile(
    r"\b\d+(?:\.\d+)?\s*-?\s*(?:lbs?|pounds?|oz|ounces?|kg|g|ct|count|pack|pk)\b\.?",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class RetailerSource:
    tag: str
    display_name: str
    site_query: str
    fallback_site_query: str
    is_product_url: Callable[[str, str], bool]  # (host, path) -> bool


RETAILERS: dict[str, RetailerSource] = {
    "chewy": RetailerSource(
        tag="chewy",
        display_name="Chewy",
        site_query="site:chewy.com/dp",
        fallback_site_query="site:chewy.com",
        is_product_url=lambda host, path: "chewy.com" in host and "/dp/" in path,
    ),
    "petco": RetailerSource(
        tag="petco",
        display_name="Petco",
        site_query="site:petco.com/shop/en/petcostore/product",
        fallback_site_query="site:petco.com",
        is_product_url=lambda host, path: "petco.com" in host and "/shop/en/petcostore/product/" in path,
    ),
    "petsmart": RetailerSource(
        tag="petsmart",
        display_name="PetSmart",
        site_query="site:petsmart.ca .html",
        fallback_site_query="site:petsmart.ca",
        is_product_url=lambda host, path: (
            "petsmart.ca" in host and path.endswith(".html") and any(c.isdigit() for c in path)
        ),
    ),
}


def query_variations(query: str) -> list[str]:
    """Base query without size specs, then a shortened form for long titles."""
    base = " ".join(_SIZE_SPEC_RE.sub(" ", query or "").split())
    variations = [base] if base else []
    words = base.split()
    if len(words) > MAX_QUERY_WORDS:
        variations.append(" ".join(words[:MAX_QUERY_WORDS]))
    return variations


def is_product_url(url: str, source: RetailerSource) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return source.is_product_url((parsed.hostname or "").lower(), parsed.path or "")


class SerperClient:
    def __init__(self, api_key: Optional[str] = None, timeout: int = PROVIDER_TIMEOUT):
        self._api_key = api_key if api_key is not None else get_serper_api_key()
        self._timeout = timeout

    def _search_raw(self, q: str) -> list[dict]:
        if not self._api_key:
            raise ProductSearchError(ProductSearchReason.INVALID_API_KEY, "SERPER_API_KEY not set")
        resp, err = post_with_retries(
            SERPER_SEARCH_URL,
            json_body={"q": q, "num": RESULTS_PER_QUERY},
            headers={"X-API-KEY": self._api_key, "Content-Type": "application/json"},
            timeout=self._timeout,
        )
        if resp is None:
            raise ProductSearchError(ProductSearchReason.NETWORK, err or "")
        if resp.status_code in (401, 403):
            raise ProductSearchError(ProductSearchReason.INVALID_API_KEY)
        if resp.status_code == 429:
            raise ProductSearchError(ProductSearchReason.RATE_LIMITED)
        if resp.status_code != 200:
            raise ProductSearchError(ProductSearchReason.NETWORK, f"status={resp.status_code}")
        try:
            organic = resp.json().get("organic") or []
        except (ValueError, AttributeError) as e:
            raise ProductSearchError(ProductSearchReason.MALFORMED, str(e)) from e
        return [r for r in organic if isinstance(r, dict)]

    def search_source_sync(self, query: str, source: RetailerSource) -> Optional[SearchCandidate]:
        """First valid product URL for one retailer, trying the narrow then the broad site query."""
        for site_query in (source.site_query, source.fallback_site_query):
            for variation in query_variations(query):
                results = self._search_raw(f"{variation} {site_query}")
                for r in results:
                    url = r.get("link") or ""
                    if is_product_url(url, source):
                        logger.info("SERPER hit source=%s url=%s", source.tag, url[:100])
                        return SearchCandidate(url=url, source=source.tag)
        logger.info("SERPER no product url source=%s query=%s", source.tag, query[:60])
        return None

    async def search(self, query: str, sources: tuple[str, ...]) -> list[SearchCandidate]:
        """
        Search every known retailer in parallel. Returns candidates in source order.
        Raises only when nothing was found and at least one retailer failed.
        """
        if not query or not query.strip():
            raise ProductSearchError(ProductSearchReason.NO_RESULTS, "empty query")
        known = [RETAILERS[s] for s in sources if s in RETAILERS]
        for s in sources:
            if s not in RETAILERS:
                logger.warning("SERPER unknown source=%s ignored", s)
        results = await asyncio.gather(
            *(asyncio.to_thread(self.search_source_sync, query, src) for src in known),
            return_exceptions=True,
        )
        candidates: list[SearchCandidate] = []
        errors: list[ProductSearchError] = []
        for src, result in zip(known, results):
            if isinstance(result, ProductSearchError):
                logger.warning("SERPER source=%s failed reason=%s", src.tag, result.reason.value)
                errors.append(result)
            elif isinstance(result, BaseException):
                raise result
            elif result is not None and result.url not in {c.url for c in candidates}:
                candidates.append(result)
        if not candidates and errors:
            raise errors[0]
        return candidates
