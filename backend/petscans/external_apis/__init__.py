"""
Product resolution providers: barcode lookup, retailer search, page extraction,
plus the offline product cache.
"""
from .base import (
    BarcodeLookup,
    BarcodeLookupError,
    BarcodeProduct,
    CachedProduct,
    ErrorKind,
    ExtractedProduct,
    ExtractionError,
    OCRError,
    OCRResult,
    ProductCache,
    ProductExtractor,
    ProductSearch,
    ProductSearchError,
    ProviderError,
    SearchCandidate,
)
from .upcitemdb import UPCitemdbClient
from .serper import SerperClient
from .firecrawl import FirecrawlClient
from .product_cache import JsonProductCache, get_product_cache

__all__ = [
    "BarcodeLookup",
    "BarcodeLookupError",
    "BarcodeProduct",
    "CachedProduct",
    "ErrorKind",
    "ExtractedProduct",
    "ExtractionError",
    "OCRError",
    "OCRResult",
    "ProductCache",
    "ProductExtractor",
    "ProductSearch",
    "ProductSearchError",
    "ProviderError",
    "SearchCandidate",
    "UPCitemdbClient",
    "SerperClient",
    "FirecrawlClient",
    "JsonProductCache",
    "get_product_cache",
]
