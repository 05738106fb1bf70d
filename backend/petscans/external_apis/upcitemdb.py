"""
UPCitemdb barcode lookup (paid v1 endpoint, key auth).
GET https://api.upcitemdb.com/prod/v1/lookup?upc=...
"""
import asyncio
import logging
from typing import Optional

from petscans.config import PROVIDER_TIMEOUT, get_upcitemdb_api_key
from petscans.external_apis.base import BarcodeLookupError, BarcodeLookupReason, BarcodeProduct
from petscans.external_apis.http_retry import get_with_retries

logger = logging.getLogger(__name__)

UPCITEMDB_LOOKUP_URL = "https://api.upcitemdb.com/prod/v1/lookup"
USER_AGENT = "PetScans/1.0"


def clean_barcode(barcode: str) -> str:
    """Trimmed barcode; raises invalid_barcode unless it is 8-14 digits (UPC/EAN/GTIN)."""
    cleaned = (barcode or "").strip()
    if not cleaned.isdigit() or not 8 <= len(cleaned) <= 14:
        raise BarcodeLookupError(BarcodeLookupReason.INVALID_BARCODE, cleaned[:20])
    return cleaned


def build_search_query(title: str, brand: Optional[str]) -> str:
    """'brand title' without repeating a brand the title already starts with."""
    title = (title or "").strip()
    brand = (brand or "").strip()
    if not brand or title.lower().startswith(brand.lower()):
        return title
    return f"{brand} {title}".strip()


class UPCitemdbClient:
    def __init__(self, api_key: Optional[str] = None, timeout: int = PROVIDER_TIMEOUT):
        self._api_key = api_key if api_key is not None else get_upcitemdb_api_key()
        self._timeout = timeout

    def lookup_sync(self, barcode: str) -> BarcodeProduct:
        upc = clean_barcode(barcode)
        headers = {
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
            "user_key": self._api_key,
            "key_type": "3scale",
        }
        resp, err = get_with_retries(
            UPCITEMDB_LOOKUP_URL, params={"upc": upc}, headers=headers, timeout=self._timeout,
        )
        if resp is None:
            raise BarcodeLookupError(BarcodeLookupReason.NETWORK, err or "")
        if resp.status_code == 429:
            raise BarcodeLookupError(BarcodeLookupReason.RATE_LIMITED)
        if resp.status_code == 404:
            raise BarcodeLookupError(BarcodeLookupReason.NOT_FOUND, upc)
        if resp.status_code != 200:
            raise BarcodeLookupError(BarcodeLookupReason.NETWORK, f"status={resp.status_code}")
        try:
            data = resp.json()
            items = data.get("items") or []
        except (ValueError, AttributeError) as e:
            raise BarcodeLookupError(BarcodeLookupReason.MALFORMED, str(e)) from e
        if not items:
            raise BarcodeLookupError(BarcodeLookupReason.NOT_FOUND, upc)

        item = items[0]
        title = (item.get("title") or "").strip()
        brand = (item.get("brand") or "").strip() or None
        logger.info("UPCITEMDB hit barcode=%s title=%s brand=%s", upc, title[:60], brand)
        return BarcodeProduct(
            display_name=title,
            brand=brand,
            search_query=build_search_query(title, brand),
        )

    async def lookup(self, barcode: str) -> BarcodeProduct:
        return await asyncio.to_thread(self.lookup_sync, barcode)
