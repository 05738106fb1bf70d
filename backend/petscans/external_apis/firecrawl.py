"""
Firecrawl page extraction. POST https://api.firecrawl.dev/v1/scrape with an
extract prompt + JSON schema; returns product name, brand, ingredients, image.
"""
import asyncio
import logging
from typing import Optional

from petscans.config import EXTRACTION_TIMEOUT, get_firecrawl_api_key
from petscans.external_apis.base import ExtractedProduct, ExtractionError, ExtractionReason
from petscans.external_apis.http_retry import post_with_retries

logger = logging.getLogger(__name__)

FIRECRAWL_SCRAPE_URL = "https://api.firecrawl.dev/v1/scrape"

EXTRACT_PROMPT = (
    "Extract the pet food product details from this page.\n"
    "- name: The full product name\n"
    "- brand: The brand name (e.g., Friskies, Blue Buffalo, Royal Canin)\n"
    "- ingredients: The complete ingredients list, split into individual items\n"
    "- price: The current price as a number\n"
    "- imageURL: The main product image URL"
)

EXTRACT_SCHEMA = {
    "type": "object",
    "properties": {
        "name": {"type": "string", "description": "Full product name"},
        "brand": {"type": "string", "description": "Brand name"},
        "ingredients": {
            "type": "array",
            "items": {"type": "string"},
            "description": "List of ingredients, each as a separate string",
        },
        "price": {"type": "number", "description": "Current price"},
        "imageURL": {"type": "string", "description": "Main product image URL"},
    },
    "required": ["name", "ingredients"],
}


def _as_ingredient_list(value) -> list[str]:
    """Extractors occasionally return the list as one comma-joined string."""
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


class FirecrawlClient:
    def __init__(self, api_key: Optional[str] = None, timeout: int = EXTRACTION_TIMEOUT):
        self._api_key = api_key if api_key is not None else get_firecrawl_api_key()
        self._timeout = timeout

    def extract_sync(self, url: str) -> ExtractedProduct:
        if not self._api_key:
            raise ExtractionError(ExtractionReason.NETWORK, "FIRECRAWL_API_KEY not set")
        body = {
            "url": url,
            "formats": ["extract"],
            "extract": {"prompt": EXTRACT_PROMPT, "schema": EXTRACT_SCHEMA},
        }
        headers = {"Authorization": f"Bearer {self._api_key}", "Content-Type": "application/json"}
        # A single attempt: a scrape that timed out once rarely succeeds on retry
        resp, err = post_with_retries(
            FIRECRAWL_SCRAPE_URL, json_body=body, headers=headers, timeout=self._timeout, max_retries=1,
        )
        if resp is None:
            raise ExtractionError(ExtractionReason.NETWORK, err or "")
        status = resp.status_code
        if status in (401, 403):
            raise ExtractionError(ExtractionReason.NETWORK, "invalid api key")
        if status == 429:
            raise ExtractionError(ExtractionReason.RATE_LIMITED)
        if status == 404:
            raise ExtractionError(ExtractionReason.NOT_FOUND, url[:100])
        if 400 <= status < 500:
            raise ExtractionError(ExtractionReason.BLOCKED, f"status={status}")
        if status != 200:
            raise ExtractionError(ExtractionReason.NETWORK, f"status={status}")
        try:
            data = resp.json()
            extract = (data.get("data") or {}).get("extract") if data.get("success") else None
        except (ValueError, AttributeError) as e:
            raise ExtractionError(ExtractionReason.PARSING_FAILED, str(e)) from e
        if not isinstance(extract, dict):
            raise ExtractionError(ExtractionReason.NO_RESULTS, url[:100])

        ingredients = _as_ingredient_list(extract.get("ingredients"))
        if not ingredients:
            raise ExtractionError(ExtractionReason.NO_RESULTS, "empty ingredients")
        logger.info("FIRECRAWL extracted url=%s ingredients=%d", url[:100], len(ingredients))
        return ExtractedProduct(
            name=(extract.get("name") or "").strip() or None,
            brand=(extract.get("brand") or "").strip() or None,
            ingredients=ingredients,
            image_url=extract.get("imageURL") or None,
            source_url=url,
        )

    async def extract(self, url: str) -> ExtractedProduct:
        return await asyncio.to_thread(self.extract_sync, url)
