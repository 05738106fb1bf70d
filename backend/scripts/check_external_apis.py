#!/usr/bin/env python3
"""
Check if the product resolution providers (UPCitemdb, Serper, Firecrawl) are reachable.
Run from backend: python scripts/check_external_apis.py [--extract URL]
Firecrawl is only called with --extract (each scrape is billed); otherwise its key is checked.
Exit 0 if barcode lookup and search both work; 1 otherwise.
"""
import sys
from pathlib import Path
from typing import Optional, Tuple

# Add backend to path when run as script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from dotenv import load_dotenv
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# Short timeout for health check
HEALTH_TIMEOUT = 8
# Any well-formed UPC works: not_found still proves the endpoint answered
SAMPLE_BARCODE = "859610007457"
SAMPLE_QUERY = "Blue Buffalo Life Protection Formula Adult Chicken Brown Rice"


def check_upcitemdb() -> Tuple[bool, str]:
    """Return (success, message)."""
    from petscans.external_apis.base import BarcodeLookupError
    from petscans.external_apis.upcitemdb import UPCitemdbClient
    try:
        product = UPCitemdbClient(timeout=HEALTH_TIMEOUT).lookup_sync(SAMPLE_BARCODE)
    except BarcodeLookupError as e:
        if e.reason == BarcodeLookupError.Reason.NOT_FOUND:
            return True, "reachable (sample barcode not found)"
        return False, str(e)
    return True, f"ok ({product.search_query[:50]})"


def check_serper() -> Tuple[bool, str]:
    from petscans.config import get_serper_api_key
    from petscans.external_apis.base import ProductSearchError
    from petscans.external_apis.serper import RETAILERS, SerperClient
    if not get_serper_api_key():
        return False, "no API key (set SERPER_API_KEY)"
    try:
        hit = SerperClient(timeout=HEALTH_TIMEOUT).search_source_sync(SAMPLE_QUERY, RETAILERS["chewy"])
    except ProductSearchError as e:
        return False, str(e)
    return True, f"ok ({hit.url[:60] if hit else 'no product url'})"


def check_firecrawl(url: Optional[str]) -> Tuple[bool, str]:
    from petscans.config import get_firecrawl_api_key
    from petscans.external_apis.base import ExtractionError
    from petscans.external_apis.firecrawl import FirecrawlClient
    if not get_firecrawl_api_key():
        return False, "no API key (set FIRECRAWL_API_KEY)"
    if not url:
        return True, "key configured (pass --extract URL to scrape)"
    try:
        product = FirecrawlClient().extract_sync(url)
    except ExtractionError as e:
        return False, str(e)
    return True, f"ok ({len(product.ingredients or [])} ingredients)"


def main() -> int:
    url = None
    if "--extract" in sys.argv:
        idx = sys.argv.index("--extract")
        url = sys.argv[idx + 1] if idx + 1 < len(sys.argv) else None
    print("Checking product resolution providers...")
    upc_ok, upc_msg = check_upcitemdb()
    print(f"  UPCitemdb: {'OK' if upc_ok else 'FAIL'} - {upc_msg}")
    serper_ok, serper_msg = check_serper()
    print(f"  Serper:    {'OK' if serper_ok else 'FAIL'} - {serper_msg}")
    fc_ok, fc_msg = check_firecrawl(url)
    print(f"  Firecrawl: {'OK' if fc_ok else 'FAIL'} - {fc_msg}")
    if upc_ok and serper_ok:
        print("Barcode lookup and retailer search are working.")
        return 0
    print("Barcode lookup or retailer search failed.")
    return 1


if __name__ == "__main__":
    sys.exit(main())
